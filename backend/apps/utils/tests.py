import json
import logging

from django.test import SimpleTestCase

from apps.utils.exceptions import CatalogError, UnknownSortingError
from apps.utils.logging import JsonLogFormatter


class JsonLogFormatterTestCase(SimpleTestCase):
    def make_record(self, message, metadata=None):
        record = logging.LogRecord("apps.catalog", logging.INFO, __file__, 10, message, None, None)
        if metadata is not None:
            record.metadata = metadata
        return record

    def test_renders_metadata(self):
        output = json.loads(JsonLogFormatter().format(
            self.make_record("Product lists rebuilt", {"sortings": 5, "categories": 2})
        ))

        self.assertEqual(output["message"], "Product lists rebuilt")
        self.assertEqual(output["level"], "INFO")
        self.assertEqual(output["metadata"], {"sortings": 5, "categories": 2})

    def test_masks_sensitive_keys(self):
        output = json.loads(JsonLogFormatter().format(
            self.make_record("Cache configured", {"redis": {"password": "hunter2", "host": "cache"}})
        ))

        self.assertEqual(output["metadata"]["redis"], {"password": "***MASKED***", "host": "cache"})

    def test_unserializable_metadata_falls_back_to_string(self):
        output = json.loads(JsonLogFormatter().format(self.make_record("x", {"value": object()})))
        self.assertIsInstance(output["metadata"], str)


class CatalogErrorTestCase(SimpleTestCase):
    def test_unknown_sorting_carries_code(self):
        error = UnknownSortingError("name|asc")

        self.assertIsInstance(error, CatalogError)
        self.assertEqual(error.code, "unknown_sorting")
        self.assertEqual(error.sorting, "name|asc")
        self.assertIn("name|asc", error.message)
