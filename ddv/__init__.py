"""
ddv - terminal viewer for DynamoDB tables.

Architecture:
- providers.py / dynamo_provider.py: Data access (protocol + boto3 implementation)
- fetch.py, cache.py, tasks.py: Paging, result cache, background tasks
- stack.py, session.py: View stack and the UI-independent driver
- views/: View state, input handlers, renderers and Textual screens
- app.py, cli.py: Textual application and command-line entry point

Extensibility points:
1. New views: Add a ViewKind and register it in views/handlers.py and views/render.py
2. New data sources: Implement the DataStore protocol
"""

__version__ = "0.3.0"
