from mcal.main import run

run()
