import tempfile
import unittest
from pathlib import Path


class TestJsonFileStorage(unittest.TestCase):
    def setUp(self):
        from marketindex.storage import JsonFileStorage

        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name) / "out"
        self.storage = JsonFileStorage(self.output_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def test_roundtrip_creates_output_dir(self):
        self.storage.write_seller_analytics({"sellers": [], "totalSellers": 0})
        self.assertTrue((self.output_dir / "seller_analytics.json").exists())
        self.assertEqual(self.storage.read_seller_analytics(), {"sellers": [], "totalSellers": 0})

    def test_write_replaces_document(self):
        self.storage.write_document("pricing_summary", {"itemCount": 1})
        self.storage.write_document("pricing_summary", {"itemCount": 2})
        self.assertEqual(self.storage.read_document("pricing_summary"), {"itemCount": 2})
        self.assertEqual(list(self.output_dir.glob("*.tmp")), [])

    def test_missing_document_raises_not_found(self):
        from marketindex.storage import AnalyticsNotFoundError

        with self.assertRaises(AnalyticsNotFoundError):
            self.storage.read_seller_analytics()

    def test_write_logs_key_and_path(self):
        with self.assertLogs("marketindex.storage.json_file", level="INFO") as logs:
            self.storage.write_document("pricing_summary", {})
        self.assertIn("Saved 'pricing_summary' to", logs.output[0])
        self.assertIn("pricing_summary.json", logs.output[0])

    def test_keys_are_sanitized(self):
        path = self.storage.path_for("../Weird Key")
        self.assertEqual(path.parent, self.output_dir)
        self.assertEqual(self.storage.path_for("pricing_weight_3.5g").name, "pricing_weight_3.5g.json")


class TestSqliteStorage(unittest.TestCase):
    def setUp(self):
        from marketindex.storage import SqliteStorage

        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self._tmp.name) / "analytics.db"
        self.storage = SqliteStorage(db_path=self.db_path)

    def tearDown(self):
        self._tmp.cleanup()

    def test_roundtrip_and_upsert(self):
        self.storage.write_seller_analytics({"totalSellers": 1})
        self.storage.write_seller_analytics({"totalSellers": 2})
        self.assertEqual(self.storage.read_seller_analytics(), {"totalSellers": 2})

    def test_missing_document_raises_not_found(self):
        from marketindex.storage import AnalyticsNotFoundError

        with self.assertRaises(AnalyticsNotFoundError):
            self.storage.read_document("pricing_summary")

    def test_write_logs_key_and_db(self):
        with self.assertLogs("marketindex.storage.sqlite", level="INFO") as logs:
            self.storage.write_document("pricing_summary", {})
        self.assertIn("Saved 'pricing_summary' to", logs.output[0])
        self.assertIn("analytics.db", logs.output[0])

    def test_data_survives_reopen(self):
        from marketindex.storage import SqliteStorage

        self.storage.write_document("pricing_summary", {"items": {"A": {"unit": "g"}}})
        reopened = SqliteStorage(db_path=self.db_path)
        self.assertEqual(reopened.read_document("pricing_summary")["items"]["A"]["unit"], "g")


class TestStorageRegistry(unittest.TestCase):
    def test_list_storages(self):
        from marketindex.storage import list_storages

        self.assertEqual(set(list_storages()), {"json", "sqlite"})

    def test_get_storage_returns_named_instance(self):
        from marketindex.storage import get_storage

        with tempfile.TemporaryDirectory() as tmp:
            storage = get_storage("sqlite", Path(tmp) / "a.db")
            self.assertEqual(storage.name, "sqlite")
            self.assertEqual(get_storage("json", tmp).name, "json")

    def test_get_storage_unknown_name(self):
        from marketindex.storage import get_storage

        with self.assertRaises(ValueError) as ctx:
            get_storage("redis")
        self.assertIn("json", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
