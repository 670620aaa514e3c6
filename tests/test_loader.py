import os
import tempfile
import unittest
from pathlib import Path

from pylogsift.core.config import DEFAULT_FILE_REGEX, OPTIONS
from pylogsift.core.errors import ConfigFileError
from pylogsift.core.loader import ConfigLoader, load_config


class TestConfigLoader(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp_dir = Path(self._tmp.name)
        self.project_dir = self.tmp_dir / "project"
        self.project_dir.mkdir()
        self.user_config = self.tmp_dir / "user" / "config.toml"

    def _loader(self, env=None):
        return ConfigLoader(
            project_dir=self.project_dir,
            user_config_path=self.user_config,
            env=env or {},
        )

    def _write(self, path, content):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def test_no_sources_gives_defaults(self):
        cfg = self._loader().load()
        self.assertEqual(cfg.phrase_regex, "")
        self.assertEqual(cfg.search_dir, ".")
        self.assertEqual(cfg.file_regex, DEFAULT_FILE_REGEX)
        self.assertIsNone(cfg.phrase_pattern)

    def test_project_file_with_tables(self):
        self._write(self.project_dir / "logsift.toml", (
            'concurrency = 3\n'
            'output = "JSON"\n'
            '[phrase]\n'
            'regex = "kill"\n'
            '[search]\n'
            'dir = "/var/log/game"\n'
            '[include]\n'
            'archive = true\n'
        ))
        cfg = self._loader().load()
        self.assertEqual(cfg.phrase_regex, "kill")
        self.assertEqual(cfg.search_dir, "/var/log/game")
        self.assertTrue(cfg.include_archives)
        self.assertEqual(cfg.concurrency, 3)
        self.assertEqual(cfg.output, "JSON")

    def test_quoted_dotted_keys(self):
        self._write(self.project_dir / "logsift.toml", '"ips.only" = true\n"file.regex" = "\\\\.txt$"\n')
        cfg = self._loader().load()
        self.assertTrue(cfg.ips_only)
        self.assertEqual(cfg.file_regex, r"\.txt$")

    def test_user_file_overrides_project_file(self):
        self._write(self.project_dir / "logsift.toml", 'output = "json"\ndeduplicate = true\n')
        self._write(self.user_config, 'output = "text"\n')
        cfg = self._loader().load()
        self.assertEqual(cfg.output, "text")
        self.assertTrue(cfg.deduplicate)

    def test_explicit_file_skips_default_locations(self):
        self._write(self.project_dir / "logsift.toml", 'deduplicate = true\n')
        custom = self._write(self.tmp_dir / "custom.toml", 'extended = true\n')
        cfg = self._loader().load(config_path=custom)
        self.assertTrue(cfg.extended)
        self.assertFalse(cfg.deduplicate)

    def test_env_overrides_files(self):
        self._write(self.project_dir / "logsift.toml", '[phrase]\nregex = "kill"\n')
        env = {
            "LOGSIFT_PHRASE_REGEX": "ban",
            "LOGSIFT_IPS_ONLY": "yes",
            "LOGSIFT_DEDUPLICATE": "0",
            "LOGSIFT_CONCURRENCY": " 8 ",
            "LOGSIFT_INCLUDE_ARCHIVE": "On",
        }
        cfg = self._loader(env=env).load()
        self.assertEqual(cfg.phrase_regex, "ban")
        self.assertTrue(cfg.ips_only)
        self.assertFalse(cfg.deduplicate)
        self.assertEqual(cfg.concurrency, 8)
        self.assertTrue(cfg.include_archives)

    def test_invalid_env_integer_is_ignored(self):
        loader = self._loader(env={"LOGSIFT_CONCURRENCY": "many"})
        with self.assertLogs("pylogsift.core.loader", level="WARNING") as logs:
            cfg = loader.load()
        self.assertEqual(cfg.concurrency, self._loader().load().concurrency)
        self.assertNotIn("concurrency", loader.values)
        self.assertIn("LOGSIFT_CONCURRENCY", logs.output[0])

    def test_overrides_win_and_none_is_skipped(self):
        env = {"LOGSIFT_OUTPUT": "json", "LOGSIFT_PHRASE_REGEX": "kill"}
        cfg = self._loader(env=env).load(overrides={"output": "text", "phrase.regex": None})
        self.assertEqual(cfg.output, "text")
        self.assertEqual(cfg.phrase_regex, "kill")

    def test_unknown_file_key_is_ignored(self):
        self._write(self.project_dir / "logsift.toml", 'colour = "blue"\n')
        with self.assertLogs("pylogsift.core.loader", level="WARNING") as logs:
            cfg = self._loader().load()
        self.assertFalse(hasattr(cfg, "colour"))
        self.assertIn("colour", logs.output[0])

    def test_broken_default_file_is_skipped(self):
        self._write(self.project_dir / "logsift.toml", 'output = \n')
        with self.assertLogs("pylogsift.core.loader", level="WARNING"):
            cfg = self._loader().load()
        self.assertEqual(cfg.output, "text")

    def test_broken_explicit_file_raises(self):
        custom = self._write(self.tmp_dir / "custom.toml", '[phrase\n')
        with self.assertRaises(ConfigFileError) as ctx:
            self._loader().load(config_path=custom)
        self.assertEqual(ctx.exception.path, str(custom))

    def test_missing_explicit_file_raises(self):
        with self.assertRaises(ConfigFileError):
            self._loader().load(config_path=self.tmp_dir / "nope.toml")

    def test_loaded_config_validates(self):
        search_dir = self.tmp_dir / "logs"
        search_dir.mkdir()
        env = {"LOGSIFT_PHRASE_REGEX": "kill", "LOGSIFT_SEARCH_DIR": str(search_dir)}
        cfg = self._loader(env=env).load(overrides={"output": "JSON"})
        cfg.validate()
        self.assertEqual(cfg.output, "json")
        self.assertTrue(cfg.phrase_pattern.search("player: kill"))


class TestLoadConfig(unittest.TestCase):

    def test_load_config_reads_given_env(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            custom = os.path.join(tmp_dir, "custom.toml")
            with open(custom, "w", encoding="utf-8") as f:
                f.write('deduplicate = true\n')
            cfg = load_config(config_path=custom, env={"LOGSIFT_OUTPUT": "json"})
        self.assertTrue(cfg.deduplicate)
        self.assertEqual(cfg.output, "json")

    def test_every_option_has_unique_env_var_and_short_flag(self):
        self.assertEqual(len({opt.env_var for opt in OPTIONS}), len(OPTIONS))
        self.assertEqual(len({opt.short for opt in OPTIONS}), len(OPTIONS))


if __name__ == '__main__':
    unittest.main()
