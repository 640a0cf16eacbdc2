import sys
import tempfile
import unittest
from unittest import mock


class TestCli(unittest.TestCase):
    def _main(self, *argv):
        from marketindex.cli import main

        with mock.patch.object(sys, "argv", ["marketindex", *argv]):
            return main()

    def test_serve_passes_host_and_port(self):
        with tempfile.TemporaryDirectory() as tmp, mock.patch("uvicorn.run") as run:
            code = self._main("--serve", "--path", tmp, "--host", "0.0.0.0", "--port", "9001")

        self.assertEqual(code, 0)
        run.assert_called_once()
        self.assertEqual(run.call_args.kwargs["host"], "0.0.0.0")
        self.assertEqual(run.call_args.kwargs["port"], 9001)
        self.assertEqual(run.call_args.args[0].state.storage.name, "json")

    def test_serve_defaults_to_localhost(self):
        with tempfile.TemporaryDirectory() as tmp, mock.patch("uvicorn.run") as run:
            self._main("--serve", "--path", tmp)

        self.assertEqual(run.call_args.kwargs["host"], "127.0.0.1")
        self.assertEqual(run.call_args.kwargs["port"], 8000)

    def test_parse_exit_codes(self):
        self.assertEqual(self._main("--parse", "3 oz gorilla cookies"), 0)
        self.assertEqual(self._main("--parse", "blue dream"), 1)


if __name__ == "__main__":
    unittest.main()
