"""
Unit tests for ClientConfig and YAML loading.
"""

import os
import tempfile
import unittest
from pathlib import Path

from py2lirc.core.errors import ConfigurationError, ErrorCodes
from py2lirc.models.config import ClientConfig, config_from_dict, load_config


class TestClientConfig(unittest.TestCase):
    """Test defaults and validation."""

    def test_defaults(self):
        config = ClientConfig()

        self.assertEqual(config.socket_path, "/var/run/lirc/lircd")
        self.assertEqual(config.port, 8765)
        self.assertFalse(config.use_tcp)
        self.assertEqual(config.validate(), (True, []))

    def test_host_selects_tcp(self):
        config = ClientConfig(host="10.0.0.5", port=9000)
        self.assertTrue(config.use_tcp)
        self.assertEqual(config.address, "10.0.0.5:9000")

    def test_ipv6_address_is_bracketed(self):
        self.assertEqual(ClientConfig(host="::1").address, "[::1]:8765")

    def test_validate_collects_errors(self):
        valid, errors = ClientConfig(
            port=0, connect_timeout=-1.0, event_queue_size=-5, log_level="LOUD"
        ).validate()

        self.assertFalse(valid)
        self.assertEqual(len(errors), 4)

    def test_requires_socket_or_host(self):
        valid, errors = ClientConfig(socket_path="").validate()
        self.assertFalse(valid)
        self.assertIn("Either socket_path or host must be set", errors)

    def test_frozen(self):
        with self.assertRaises(Exception):
            ClientConfig().port = 1


class TestConfigFromDict(unittest.TestCase):

    def test_empty_document_gives_defaults(self):
        self.assertEqual(config_from_dict(None), ClientConfig())

    def test_sections(self):
        config = config_from_dict({
            'lircd': {'host': 'pi.local', 'port': 8766, 'connect_timeout': 5},
            'logging': {'level': 'debug'},
        })

        self.assertEqual(config.host, 'pi.local')
        self.assertEqual(config.port, 8766)
        self.assertEqual(config.connect_timeout, 5)
        self.assertEqual(config.log_level, 'DEBUG')

    def test_unknown_section_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            config_from_dict({'remotes': {}})
        self.assertEqual(ctx.exception.error_code, ErrorCodes.UNKNOWN_SETTING)

    def test_unknown_key_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            config_from_dict({'lircd': {'sockt_path': '/tmp/x'}})
        self.assertEqual(ctx.exception.context['setting'], 'sockt_path')

    def test_invalid_values_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            config_from_dict({'lircd': {'port': 0}})
        self.assertEqual(ctx.exception.error_code, ErrorCodes.CONFIG_INVALID)

    def test_non_mapping_rejected(self):
        with self.assertRaises(ConfigurationError):
            config_from_dict(["not", "a", "mapping"])


class TestLoadConfig(unittest.TestCase):
    """Test reading YAML files."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        for name in os.listdir(self.tmpdir):
            os.unlink(os.path.join(self.tmpdir, name))
        os.rmdir(self.tmpdir)

    def write(self, text: str) -> Path:
        path = Path(self.tmpdir) / "py2lirc.yaml"
        path.write_text(text)
        return path

    def test_load_yaml(self):
        path = self.write(
            "lircd:\n"
            "  socket_path: /run/lirc/lircd\n"
            "  event_queue_size: 10\n"
            "logging:\n"
            "  level: WARNING\n"
        )

        config = load_config(path)
        self.assertEqual(config.socket_path, "/run/lirc/lircd")
        self.assertEqual(config.event_queue_size, 10)
        self.assertEqual(config.log_level, "WARNING")

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError) as ctx:
            load_config(Path(self.tmpdir) / "nope.yaml")
        self.assertEqual(ctx.exception.error_code, ErrorCodes.CONFIG_NOT_FOUND)

    def test_unparseable_yaml(self):
        path = self.write("lircd: [unclosed\n")
        with self.assertRaises(ConfigurationError) as ctx:
            load_config(path)
        self.assertIsNotNone(ctx.exception.cause)


if __name__ == '__main__':
    unittest.main()
