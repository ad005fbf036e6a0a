"""
Tests for the ``python -m lagscript`` command line.
"""

import pytest

from lagscript.__main__ import main, parse_value

SHAPES = """\
let scale: float = 2;

fn area(w: float, h: float) -> float {
    return w * h * scale;
}

fn label(n: int) -> string {
    return "n=" + str(n);
}

fn tick() {
    print("tick");
}
"""


@pytest.fixture
def shapes(write_script):
    return write_script("shapes.lag", SHAPES)


class TestParseValue:
    """Test command line argument coercion."""

    def test_values(self):
        assert parse_value("3") == 3
        assert parse_value("2.5") == 2.5
        assert parse_value("true") is True
        assert parse_value("False") is False
        assert parse_value('"quoted"') == "quoted"
        assert parse_value("plain") == "plain"


class TestCommands:
    """Test each sub-command."""

    def test_check_ok(self, shapes, capsys):
        assert main(["check", str(shapes)]) == 0
        out = capsys.readouterr().out
        assert "OK: shapes.lag - 3 function(s), 1 global(s)" in out

    def test_check_type_errors(self, write_script, capsys):
        path = write_script("bad.lag", 'let x: int = "oops";\n')
        assert main(["check", str(path)]) == 1
        out = capsys.readouterr().out
        assert "E210" in out

    def test_check_syntax_error(self, write_script, capsys):
        path = write_script("bad.lag", "let x = ;\n")
        assert main(["check", str(path)]) == 1
        assert "E101" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "nope.lag")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_list(self, shapes, capsys):
        assert main(["list", str(shapes)]) == 0
        out = capsys.readouterr().out
        assert "area(w: float, h: float) -> float" in out
        assert "label(n: int) -> string" in out

    def test_transpile_to_stdout(self, shapes, capsys):
        assert main(["transpile", str(shapes)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("# Generated from Lag module 'shapes'")
        assert "def area(w, h):" in out

    def test_transpile_to_file(self, shapes, tmp_path):
        output = tmp_path / "shapes_gen.py"
        assert main(["transpile", str(shapes), "-o", str(output), "--name", "geo"]) == 0
        assert "'geo'" in output.read_text().splitlines()[0]

    def test_run(self, shapes, capsys):
        assert main(["run", str(shapes), "area", "2", "3.5"]) == 0
        assert capsys.readouterr().out.strip() == "14.0"

    def test_run_string_result(self, shapes, capsys):
        assert main(["run", str(shapes), "label", "4"]) == 0
        assert capsys.readouterr().out.strip() == "n=4"

    def test_run_unknown_entry(self, shapes, capsys):
        assert main(["run", str(shapes), "volume"]) == 1
        assert "no entry point 'volume'" in capsys.readouterr().err

    def test_watch_iterations(self, shapes):
        assert main(["watch", str(shapes), "--interval", "0", "--iterations", "2",
                     "--entry", "tick"]) == 0

    def test_watch_nothing(self, tmp_path, capsys):
        assert main(["watch", str(tmp_path / "nope.lag"), "--interval", "0",
                     "--iterations", "1"]) == 1
        assert "nothing to watch" in capsys.readouterr().err

    def test_bad_config(self, shapes, tmp_path, capsys):
        config = tmp_path / "bad.yaml"
        config.write_text("render:\n  fps: 60\n")
        assert main(["--config", str(config), "check", str(shapes)]) == 1
        assert "unknown configuration section" in capsys.readouterr().err

    def test_requires_a_command(self):
        with pytest.raises(SystemExit):
            main([])
