from autopilot import cli

cli()
