"""
Test suite for the Investigation Network Engine.

Organized by module:
- test_validator.py - Schema validation of import payloads
- test_normalizer.py - Payload normalization and JSON decoding
- test_merge_resolver.py - Merge/replace resolution
- test_graph_store.py - Store operations, events and replay
- test_history.py - Snapshot history and restore
- test_graph_views.py - Derived NetworkX views
- test_importer.py - End-to-end import pipeline
- test_extraction.py - AI backend client and result adapter
- test_api.py - FastAPI endpoint tests
- test_import_cli.py - Import CLI script
- test_logger.py - Logging helpers
"""

# Test fixtures are provided in conftest.py
