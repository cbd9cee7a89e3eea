from pathlib import Path

from click.testing import CliRunner

from http_fmt.cli import main
from http_fmt.config import CONFIG_FILENAME

FIXTURES = Path(__file__).parent / "fixtures"
CANONICAL = (FIXTURES / "http" / "canonical.http").read_text(encoding="utf-8")
MESSY = (FIXTURES / "http" / "messy.http").read_text(encoding="utf-8")


class TestCliCheck:
    def test_valid_file(self):
        runner = CliRunner()
        result = runner.invoke(main, ["check", str(FIXTURES / "http" / "canonical.http")])
        assert result.exit_code == 0
        assert "Valid file:" in result.output

    def test_invalid_file(self):
        runner = CliRunner()
        result = runner.invoke(main, ["check", "-v", str(FIXTURES / "http" / "messy.http")])
        assert result.exit_code == 1
        assert "Invalid file:" in result.output

    def test_parse_error_reported_and_siblings_checked(self, tmp_path):
        (tmp_path / "a.http").write_text("GET https://example.com HTTP/1.1\nnot a header\n")
        (tmp_path / "b.http").write_text(CANONICAL)
        runner = CliRunner()
        result = runner.invoke(main, ["check", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error in file:" in result.output
        assert "Valid file:" in result.output

    def test_format_error_exit_code(self, tmp_path):
        (tmp_path / "a.http").write_text("POST https://example.com\nContent-Type: application/json\n\n{invalid\n")
        runner = CliRunner()
        result = runner.invoke(main, ["check", str(tmp_path)])
        assert result.exit_code == 3
        assert "invalid json body" in result.output

    def test_stdin(self):
        runner = CliRunner()
        result = runner.invoke(main, ["check", "--stdin"], input=CANONICAL)
        assert result.exit_code == 0
        result = runner.invoke(main, ["check", "--stdin"], input=MESSY)
        assert result.exit_code == 1


class TestCliFormat:
    def test_format_in_place(self, tmp_path):
        path = tmp_path / "messy.http"
        path.write_text(MESSY, encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(main, ["format", str(path)])
        assert result.exit_code == 0
        assert "Formatted file:" in result.output
        assert path.read_text(encoding="utf-8") == CANONICAL

    def test_format_stdin_to_stdout(self):
        runner = CliRunner()
        result = runner.invoke(main, ["format", "--stdin"], input=MESSY)
        assert result.exit_code == 0
        assert result.output == CANONICAL

    def test_format_current_directory_by_default(self, tmp_path):
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("req.http").write_text("https://example.com\n")
            result = runner.invoke(main, ["format"])
            assert result.exit_code == 0
            assert Path("req.http").read_text() == "###\n\nGET https://example.com HTTP/1.1\n"

    def test_config_defaults_used(self, tmp_path):
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(CONFIG_FILENAME).write_text("defaults:\n  http_method: POST\n")
            result = runner.invoke(main, ["format", "--stdin"], input="https://example.com\n")
            assert result.output == "###\n\nPOST https://example.com HTTP/1.1\n"

    def test_invalid_config_exit_code(self, tmp_path):
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(CONFIG_FILENAME).write_text("defaults:\n  - GET\n")
            result = runner.invoke(main, ["check"])
            assert result.exit_code == 2


class TestCliConvert:
    def test_convert_openapi(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "convert", str(FIXTURES / "petstore.yaml"),
            "--from", "openapi",
            "-o", str(tmp_path),
        ])
        assert result.exit_code == 0
        assert (tmp_path / "petstore.api.example.com.http").exists()
        assert (tmp_path / "petstore.eu.staging.example.com.http").exists()
        assert "Converted file:" in result.output

    def test_convert_auto_detects_each_source(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, [
            "convert", str(FIXTURES / "sample.postman.json"), str(FIXTURES / "bruno"),
            "-o", str(tmp_path),
        ])
        assert result.exit_code == 0
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "Shop API.dev.http",
            "Shop API.prod.http",
            "Users API.http",
        ]

    def test_convert_schema_error_exit_code(self, tmp_path):
        source = tmp_path / "broken.json"
        source.write_text('{"info": {"_postman_id": "x"}}')
        runner = CliRunner()
        result = runner.invoke(main, ["convert", str(source), "-o", str(tmp_path / "out")])
        assert result.exit_code == 4

    def test_convert_requires_sources(self):
        runner = CliRunner()
        result = runner.invoke(main, ["convert"])
        assert result.exit_code == 2


class TestCliInit:
    def test_init_writes_default_config(self, tmp_path):
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["init"])
            assert result.exit_code == 0
            assert "http_method: GET" in Path(CONFIG_FILENAME).read_text()

    def test_init_keeps_existing_file_when_declined(self, tmp_path):
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(CONFIG_FILENAME).write_text("defaults:\n  http_method: PUT\n")
            result = runner.invoke(main, ["init"], input="n\n")
            assert result.exit_code == 0
            assert "PUT" in Path(CONFIG_FILENAME).read_text()

    def test_init_overwrites_when_confirmed(self, tmp_path):
        runner = CliRunner()
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path(CONFIG_FILENAME).write_text("broken: [\n")
            result = runner.invoke(main, ["init"], input="y\n")
            assert result.exit_code == 0
            assert "http_method: GET" in Path(CONFIG_FILENAME).read_text()
