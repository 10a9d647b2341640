from semantic_memory.cli.commands import app

app()
