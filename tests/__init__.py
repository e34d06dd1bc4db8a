"""
Test suite for the catalog feed importer.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_product_mapper.py -v
"""
