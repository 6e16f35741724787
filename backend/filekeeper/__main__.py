from filekeeper.main import run

run()
