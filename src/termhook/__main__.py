from termhook.cli import app

app()
