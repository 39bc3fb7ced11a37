import unittest
import tempfile
import dataclasses
import json
import sys
import os

# Add the parent directory to the Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from substitution_proxy.config import ConfigError, ProxyConfig
from substitution_proxy.__main__ import main


class TestProxyConfig(unittest.TestCase):
    """Test cases for configuration loading."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.tmpdir.name, "config.json")

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, content: str) -> None:
        with open(self.config_path, 'w') as f:
            f.write(content)

    def test_defaults(self):
        """Test that only targetServer is required."""
        # Act
        config = ProxyConfig.from_dict({"targetServer": "example.com"})

        # Assert
        self.assertEqual(config.target_server, "example.com")
        self.assertEqual(config.substitution_dir, "substitution")
        self.assertEqual(config.port, 8080)
        self.assertEqual(config.host, "127.0.0.1")
        self.assertEqual(config.timeout, 30.0)

    def test_load_from_file(self):
        """Test loading every recognized option from a JSON file."""
        # Arrange
        self._write(json.dumps({
            "targetServer": "example.com",
            "substitutionDir": "sub",
            "port": 9000,
            "host": "0.0.0.0",
            "timeout": 5,
            "unrelated": True
        }))

        # Act
        config = ProxyConfig.from_file(self.config_path)

        # Assert
        self.assertEqual(config, ProxyConfig(
            target_server="example.com",
            substitution_dir="sub",
            port=9000,
            host="0.0.0.0",
            timeout=5.0
        ))

    def test_config_is_immutable(self):
        config = ProxyConfig(target_server="example.com")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.port = 1

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            ProxyConfig.from_file(os.path.join(self.tmpdir.name, "absent.json"))

    def test_malformed_json(self):
        self._write("{targetServer: example.com")
        with self.assertRaises(ConfigError):
            ProxyConfig.from_file(self.config_path)

    def test_invalid_values(self):
        """Test rejection of missing or mistyped fields."""
        invalid = [
            [],
            {},
            {"targetServer": ""},
            {"targetServer": 42},
            {"targetServer": "example.com", "port": "8080"},
            {"targetServer": "example.com", "port": True},
            {"targetServer": "example.com", "port": 70000},
            {"targetServer": "example.com", "host": None},
            {"targetServer": "example.com", "substitutionDir": 1},
            {"targetServer": "example.com", "timeout": 0},
        ]
        for data in invalid:
            with self.subTest(data=data):
                with self.assertRaises(ConfigError):
                    ProxyConfig.from_dict(data)

    def test_config_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigError, ValueError))

    def test_cli_fails_before_binding_on_bad_config(self):
        """Test that the entry point exits with an error for a broken config."""
        self._write(json.dumps({"port": 9000}))
        with self.assertLogs("substitution_proxy", level="ERROR"):
            self.assertEqual(main(["--config", self.config_path]), 1)


if __name__ == '__main__':
    unittest.main()
