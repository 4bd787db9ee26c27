"""
Test package for search-do.

This package contains:
- test_conformance.py: Conformance tests from YAML specs
- test_block.py: Block recorder tests
- test_tree.py: Value tree tests
- test_compiler.py: Document compiler tests
- test_encoding.py: Encoding tests
- test_future.py: ActionFuture tests
- test_errors.py: Error taxonomy tests
- test_config.py: Configuration tests
- conftest.py: Pytest configuration and fixtures
"""
