from esenricher.main import cli

cli()
