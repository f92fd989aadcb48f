"""Allow ``python -m src.cli`` execution (runs the research CLI)."""

from src.cli.research import main

main()
