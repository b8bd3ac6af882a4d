from graveshift_cli.main import run

run()
