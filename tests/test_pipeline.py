import json
import tempfile
import unittest
from datetime import datetime, UTC
from pathlib import Path

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

BATCHES = [
    {
        "sellerId": 1,
        "sellerName": "Green Cross",
        "reviews": [
            {"rating": 10, "reviewDate": "2024-05-20T00:00:00Z", "daysToArrive": 2},
            {"rating": 9, "reviewDate": "2024-05-25T00:00:00Z", "daysToArrive": 3},
        ],
    },
    {
        "sellerId": "2",
        "sellerName": "Budget Buds",
        "reviews": [{"rating": 3, "reviewDate": "2024-05-28T00:00:00Z"}],
    },
    {"sellerName": "No id", "reviews": []},
]


class TestAnalyticsCycle(unittest.TestCase):
    def setUp(self):
        from marketindex.storage import JsonFileStorage

        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)
        self.storage = JsonFileStorage(self.tmp_path / "output")

        self.batch_file = self.tmp_path / "crawl.json"
        self.batch_file.write_text(json.dumps(BATCHES), encoding="utf-8")

    def tearDown(self):
        self._tmp.cleanup()

    def test_load_batches_skips_entries_without_id(self):
        from marketindex.pipeline import load_batches

        batches = load_batches(self.batch_file)
        self.assertEqual([b.seller_id for b in batches], ["1", "2"])
        self.assertEqual(batches[0].meta.seller_name, "Green Cross")
        self.assertEqual(len(batches[0].reviews), 2)

    def test_load_batches_rejects_non_list(self):
        from marketindex.pipeline import load_batches

        self.batch_file.write_text(json.dumps({"sellerId": 1}), encoding="utf-8")
        with self.assertRaises(ValueError):
            load_batches(self.batch_file)

    def test_cycle_persists_sorted_aggregate(self):
        from marketindex.pipeline import load_batches, run_analytics_cycle

        aggregate = run_analytics_cycle(self.storage, load_batches(self.batch_file), now=NOW)

        self.assertEqual(aggregate.total_sellers, 2)
        self.assertEqual([s.seller_id for s in aggregate.sellers], ["1", "2"])

        stored = self.storage.read_seller_analytics()
        self.assertEqual(stored["totalSellers"], 2)
        first = stored["sellers"][0]
        self.assertEqual(first["sellerName"], "Green Cross")
        self.assertEqual(first["lifetime"]["avgRating"], 9.5)
        self.assertEqual(first["lifetime"]["avgDaysToArrive"], 2.5)
        self.assertEqual(first["recent30Days"]["reviewCount"], 2)
        self.assertEqual(stored["sellers"][1]["lifetime"]["negativeCount"], 1)

    def test_repeat_cycle_does_not_double_count(self):
        from marketindex.pipeline import load_batches, run_analytics_cycle

        batches = load_batches(self.batch_file)
        run_analytics_cycle(self.storage, batches, now=NOW)
        again = run_analytics_cycle(self.storage, batches, now=NOW)

        self.assertEqual(again.get_seller("1").lifetime.total_reviews, 2)
        self.assertEqual(again.get_seller("2").lifetime.total_reviews, 1)

    def test_sellers_missing_from_run_are_kept(self):
        from marketindex.pipeline import SellerBatch, load_batches, run_analytics_cycle

        run_analytics_cycle(self.storage, load_batches(self.batch_file), now=NOW)
        later = run_analytics_cycle(
            self.storage,
            [SellerBatch(seller_id="3", reviews=[{"rating": 9}, {"rating": 9}, {"rating": 9}])],
            now=NOW,
        )

        self.assertEqual(later.total_sellers, 3)
        self.assertEqual([s.seller_id for s in later.sellers], ["3", "1", "2"])

    def test_cycle_on_sqlite(self):
        from marketindex.pipeline import load_batches, run_analytics_cycle
        from marketindex.storage import SqliteStorage

        storage = SqliteStorage(db_path=self.tmp_path / "analytics.db")
        run_analytics_cycle(storage, load_batches(self.batch_file), now=NOW)
        self.assertEqual(storage.read_seller_analytics()["totalSellers"], 2)


if __name__ == "__main__":
    unittest.main()
