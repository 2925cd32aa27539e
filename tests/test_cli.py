"""Tests for CLI argument parsing and configuration.

This module tests the command-line interface including:
- Argument parsing and validation
- Rule file / directory resolution
- Configuration precedence
- Logging setup
- The main() entry point end to end
"""

import pytest

from filtertree.cli import (
    CLIError,
    build_config_from_args,
    load_config,
    main,
    parse_arguments,
    resolve_paths,
    setup_logging,
)
from filtertree.core.constants import ErrorCode
from filtertree.core.logging import LogLevel, get_logger

RULES = ["- dir1/sub1/**", "- dir1/sub2/**", "+ dir1/**", "+ dir2/**", "- *"]


class TestParseArguments:
    """Test argument parsing."""

    def test_defaults(self):
        """Parses an empty command line."""
        args = parse_arguments([])

        assert args.filter_file is None
        assert args.directory is None
        assert args.file is None
        assert args.path is None
        assert args.checkers is None
        assert args.sort is None
        assert args.depth is None
        assert not args.print_rules
        assert not args.debug

    def test_all_options(self, config_file):
        """Parses every option."""
        args = parse_arguments(
            [
                "-f", "rules.txt",
                "-p", "/data",
                "-c", str(config_file),
                "--checkers", "8",
                "--sort", "size",
                "--depth", "2",
                "--print-rules",
                "--debug",
                "--log-file", "ft.log",
            ]
        )

        assert args.file == "rules.txt"
        assert args.path == "/data"
        assert args.config == str(config_file)
        assert args.checkers == 8
        assert args.sort == "size"
        assert args.depth == 2
        assert args.print_rules
        assert args.debug
        assert args.log_file == "ft.log"

    def test_positionals(self):
        """Parses both positionals."""
        args = parse_arguments(["myfilters.txt", "/data"])
        assert args.filter_file == "myfilters.txt"
        assert args.directory == "/data"

    def test_invalid_sort(self):
        """Rejects unknown sort modes."""
        with pytest.raises(SystemExit):
            parse_arguments(["--sort", "random"])

    def test_negative_depth(self):
        """Rejects negative depth."""
        with pytest.raises(CLIError, match="Depth must not be negative"):
            parse_arguments(["--depth", "-1"])

    def test_missing_config_file(self, temp_dir):
        """Rejects a configuration file that does not exist."""
        with pytest.raises(CLIError) as exc_info:
            parse_arguments(["-c", str(temp_dir / "missing.yaml")])
        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_config_is_directory(self, temp_dir):
        """Rejects a configuration path that is not a file."""
        with pytest.raises(CLIError, match="not a file"):
            parse_arguments(["-c", str(temp_dir)])

    def test_version(self, capsys):
        """Prints the version and exits."""
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(["--version"])
        assert exc_info.value.code == 0
        assert "filtertree" in capsys.readouterr().out


class TestResolvePaths:
    """Test rule file and directory resolution."""

    @pytest.fixture(autouse=True)
    def workdir(self, temp_dir, monkeypatch):
        (temp_dir / "data").mkdir()
        (temp_dir / "other").mkdir()
        (temp_dir / "rules.txt").write_text("- *\n")
        monkeypatch.chdir(temp_dir)

    def test_no_arguments(self):
        assert resolve_paths(parse_arguments([])) == ("filter.txt", ".")

    def test_configured_default_rule_file(self):
        assert resolve_paths(parse_arguments([]), "rules.txt") == ("rules.txt", ".")

    def test_single_directory(self):
        """A lone directory argument is the directory to browse."""
        assert resolve_paths(parse_arguments(["data"])) == ("filter.txt", "data")

    def test_single_file(self):
        """A lone non-directory argument is the rule file."""
        assert resolve_paths(parse_arguments(["rules.txt"])) == ("rules.txt", ".")

    def test_file_and_directory(self):
        assert resolve_paths(parse_arguments(["rules.txt", "data"])) == ("rules.txt", "data")

    def test_file_option_with_positional_directory(self):
        assert resolve_paths(parse_arguments(["-f", "rules.txt", "data"])) == ("rules.txt", "data")

    def test_path_option_wins(self):
        args = parse_arguments(["rules.txt", "data", "-p", "other"])
        assert resolve_paths(args) == ("rules.txt", "other")

    def test_both_options(self):
        args = parse_arguments(["-f", "rules.txt", "-p", "other"])
        assert resolve_paths(args) == ("rules.txt", "other")


class TestBuildConfig:
    """Test configuration building from arguments."""

    def test_only_given_options(self):
        """Options left out are not included."""
        assert build_config_from_args(parse_arguments([])) == {"filtertree": {}}

    def test_scan_and_logging(self):
        config = build_config_from_args(
            parse_arguments(["--checkers", "2", "--sort", "files", "--debug", "--log-file", "x.log"])
        )
        assert config == {
            "filtertree": {
                "scan": {"checkers": 2, "sort": "files"},
                "logging": {"level": "DEBUG", "file": "x.log"},
            }
        }


class TestLoadConfig:
    """Test configuration precedence."""

    def test_defaults(self):
        config = load_config(parse_arguments([]))
        assert config.get("filtertree.scan.checkers") == 4
        assert config.get("filtertree.rules.file") == "filter.txt"

    def test_config_file(self, config_file):
        config = load_config(parse_arguments(["-c", str(config_file)]))
        assert config.get("filtertree.scan.checkers") == 8
        assert config.get("filtertree.scan.sort") == "size"
        assert config.get("filtertree.rules.file") == "rules.txt"

    def test_arguments_override_file(self, config_file):
        config = load_config(parse_arguments(["-c", str(config_file), "--checkers", "2"]))
        assert config.get("filtertree.scan.checkers") == 2
        assert config.get("filtertree.scan.sort") == "size"

    def test_environment_between_file_and_arguments(self, config_file, monkeypatch):
        monkeypatch.setenv("FILTERTREE_SCAN_CHECKERS", "16")
        config = load_config(parse_arguments(["-c", str(config_file)]))
        assert config.get("filtertree.scan.checkers") == 16

        config = load_config(parse_arguments(["-c", str(config_file), "--checkers", "3"]))
        assert config.get("filtertree.scan.checkers") == 3


class TestSetupLogging:
    """Test logging setup."""

    def test_default_level(self):
        args = parse_arguments([])
        logger = setup_logging(args, load_config(args))
        assert logger.level == LogLevel.WARNING
        assert get_logger() is logger

    def test_debug_flag(self):
        args = parse_arguments(["--debug"])
        assert setup_logging(args, load_config(args)).level == LogLevel.DEBUG

    def test_level_from_config(self, config_file):
        args = parse_arguments(["-c", str(config_file)])
        assert setup_logging(args, load_config(args)).level == LogLevel.DEBUG

    def test_invalid_level(self, monkeypatch):
        monkeypatch.setenv("FILTERTREE_LOGGING_LEVEL", "loud")
        args = parse_arguments([])
        with pytest.raises(CLIError, match="Invalid log level"):
            setup_logging(args, load_config(args))

    def test_log_file(self, temp_dir):
        log_file = temp_dir / "filtertree.log"
        args = parse_arguments(["--debug", "--log-file", str(log_file)])
        logger = setup_logging(args, load_config(args))
        logger.info("Written to file")
        for handler in list(logger.logger.handlers):
            handler.flush()
        assert "Written to file" in log_file.read_text()


class TestMain:
    """Test the main() entry point."""

    def test_prints_tree(self, source_dir, write_rules, capsys):
        rule_file = write_rules(RULES)
        code = main(["-f", str(rule_file), "-p", str(source_dir), "--depth", "1"])

        assert code == 0
        assert capsys.readouterr().out.splitlines() == [
            "[-] source/ (40 B, 6 files)",
            "  [+] dir1/ (6 B, 3 files)",
            "  [+] dir2/ (4 B, 1 file)",
            "  [-] 1.txt (10 B)",
            "  [-] 2.txt (20 B)",
        ]

    def test_print_rules(self, source_dir, write_rules, capsys):
        rule_file = write_rules(RULES)
        code = main([str(rule_file), str(source_dir), "--depth", "0", "--print-rules"])

        assert code == 0
        assert capsys.readouterr().out.splitlines() == ["[-] source/ (40 B, 6 files)", ""] + RULES

    def test_missing_directory(self, temp_dir, capsys):
        code = main(["-p", str(temp_dir / "missing")])
        assert code == ErrorCode.NOT_FOUND
        assert "Directory does not exist" in capsys.readouterr().err

    def test_directory_is_file(self, write_rules, capsys):
        rule_file = write_rules(RULES)
        code = main(["-p", str(rule_file)])
        assert code == ErrorCode.INVALID_INPUT
        assert "Not a directory" in capsys.readouterr().err

    def test_missing_config(self, temp_dir, capsys):
        code = main(["-c", str(temp_dir / "missing.yaml")])
        assert code == ErrorCode.NOT_FOUND
        assert "Configuration file does not exist" in capsys.readouterr().err

    def test_unexpected_error(self, capsys, monkeypatch):
        def boom(args):
            raise RuntimeError("boom")

        monkeypatch.setattr("filtertree.cli.load_config", boom)
        assert main([]) == ErrorCode.INTERNAL_ERROR
        assert "Unexpected error: boom" in capsys.readouterr().err

    def test_keyboard_interrupt(self, capsys, monkeypatch):
        def interrupt(args):
            raise KeyboardInterrupt

        monkeypatch.setattr("filtertree.cli.load_config", interrupt)
        assert main([]) == ErrorCode.INTERRUPTED
