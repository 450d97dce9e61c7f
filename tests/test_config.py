import unittest

from oddshell.config import Config, parse_level, parse_order
from oddshell.pipeline import StageOrder


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        config = Config.from_env({})
        self.assertEqual(config.prompt, "osh>")
        self.assertIs(config.order, StageOrder.NATURAL)
        self.assertEqual(config.log_level, "WARNING")
        self.assertEqual(config.port, 8000)

    def test_from_env(self):
        config = Config.from_env({
            "OSH_PROMPT": "$ ",
            "OSH_ORDER": "Reversed",
            "OSH_LOG_LEVEL": "debug",
            "OSH_HOST": "0.0.0.0",
            "PORT": "9001",
        })
        self.assertEqual(config.prompt, "$ ")
        self.assertIs(config.order, StageOrder.REVERSED)
        self.assertEqual(config.log_level, "DEBUG")
        self.assertEqual(config.host, "0.0.0.0")
        self.assertEqual(config.port, 9001)

    def test_bad_values_name_the_variable(self):
        with self.assertRaisesRegex(ValueError, "OSH_ORDER"):
            Config.from_env({"OSH_ORDER": "sideways"})
        with self.assertRaisesRegex(ValueError, "PORT"):
            Config.from_env({"PORT": "http"})
        with self.assertRaisesRegex(ValueError, "OSH_LOG_LEVEL"):
            Config.from_env({"OSH_LOG_LEVEL": "loud"})

    def test_parsers(self):
        self.assertIs(parse_order(" natural "), StageOrder.NATURAL)
        self.assertEqual(parse_level("error"), "ERROR")


if __name__ == "__main__":
    unittest.main()
