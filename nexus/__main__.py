"""Entry point for ``python -m nexus <command>``.

Commands:
    scan     – resolve a code offline against the seed catalog and print the card
    catalog  – list the ids in the seed (or a YAML) catalog
    serve    – start the FastAPI backend with uvicorn
"""
from nexus.cli import main

if __name__ == "__main__":
    main()
