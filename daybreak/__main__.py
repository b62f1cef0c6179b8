from daybreak.main import cli

cli()
