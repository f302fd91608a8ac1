from __future__ import annotations

import unittest

from config.settings import Settings


class SettingsFromEnvTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = Settings.from_env({})
        self.assertEqual(settings.verify_token, "HEHEHAHA")
        self.assertEqual(settings.gemini_reply_model, "gemini-2.5-flash")
        self.assertEqual(settings.gemini_extract_model, "gemini-2.0-flash")
        self.assertIsNone(settings.gemini_api_key)
        self.assertIsNone(settings.mongo_uri)
        self.assertEqual(settings.port, 8000)
        self.assertTrue(settings.is_development)

    def test_reads_environment(self) -> None:
        settings = Settings.from_env(
            {
                "APP_ENV": "production",
                "GEMINI_API_KEY": " abc ",
                "WHATSAPP_TOKEN": "tok",
                "PHONE_NUMBER_ID": "42",
                "VERSION": "v20.0",
                "VERIFY_TOKEN": "secret",
                "MONGO_URI": "mongodb://localhost:27017",
                "PORT": "3000",
                "HTTP_TIMEOUT_SECONDS": "12.5",
                "LOG_LEVEL": "debug",
            }
        )
        self.assertEqual(settings.gemini_api_key, "abc")
        self.assertEqual(settings.graph_api_version, "v20.0")
        self.assertEqual(settings.verify_token, "secret")
        self.assertEqual(settings.port, 3000)
        self.assertEqual(settings.http_timeout_seconds, 12.5)
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertFalse(settings.is_development)

    def test_graph_api_version_wins_over_version(self) -> None:
        settings = Settings.from_env({"VERSION": "v18.0", "GRAPH_API_VERSION": "v21.0"})
        self.assertEqual(settings.graph_api_version, "v21.0")

    def test_malformed_numbers_fall_back(self) -> None:
        settings = Settings.from_env({"PORT": "eighty", "HTTP_TIMEOUT_SECONDS": "soon"})
        self.assertEqual(settings.port, 8000)
        self.assertEqual(settings.http_timeout_seconds, 60.0)


if __name__ == "__main__":
    unittest.main()
