import json
import logging
import sys
import unittest

from inventory_insights.core.logging import JsonFormatter


class JsonFormatterTest(unittest.TestCase):
    def _record(self, exc_info=None):
        return logging.LogRecord("inventory_insights.test", logging.WARNING, __file__, 1, "variance %s", ("high",), exc_info)

    def test_payload_fields(self):
        payload = json.loads(JsonFormatter(service="inventory", environment="local").format(self._record()))

        self.assertEqual(payload["message"], "variance high")
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["service"], "inventory")
        self.assertEqual(payload["environment"], "local")
        self.assertNotIn("exc_info", payload)

    def test_exception_is_included(self):
        try:
            raise RuntimeError("store down")
        except RuntimeError:
            record = self._record(sys.exc_info())
        payload = json.loads(JsonFormatter().format(record))

        self.assertIn("store down", payload["exc_info"])
        self.assertNotIn("service", payload)


if __name__ == "__main__":
    unittest.main()
