"""Serializers and the file-writing OutputRenderer."""

import datetime
import json
import tomllib

import pytest
import yaml

from frontmatter_schema.core.types import Failure, Success
from frontmatter_schema.exceptions import RenderError
from frontmatter_schema.rendering import OutputRenderer, RenderRequest, format_from_suffix, serialize

pytestmark = pytest.mark.unit

DATA = {"title": "Registry", "count": 2, "tags": ["a", "b"], "owner": None}


class TestSerializers:
    def test_json_is_indented_and_newline_terminated(self):
        text = serialize({"when": datetime.date(2024, 1, 2)}, "json")

        assert text == '{\n  "when": "2024-01-02"\n}\n'

    def test_yaml_keeps_key_order(self):
        text = serialize({"z": 1, "a": 2}, "yaml")

        assert text.splitlines() == ["z: 1", "a: 2"]

    def test_toml_drops_null_values(self):
        parsed = tomllib.loads(serialize(DATA, "toml"))

        assert parsed == {"title": "Registry", "count": 2, "tags": ["a", "b"]}

    def test_toml_needs_a_mapping(self):
        with pytest.raises(RenderError, match="mapping"):
            serialize(["a"], "toml")

    def test_markdown_wraps_data_as_frontmatter(self):
        text = serialize({"title": "x"}, "markdown")

        assert text == "---\ntitle: x\n---\n"

    def test_unknown_format(self):
        with pytest.raises(RenderError, match="Unsupported"):
            serialize({}, "xml")

    @pytest.mark.parametrize(
        ("name", "expected"),
        [("a.json", "json"), ("a.YML", "yaml"), ("a.toml", "toml"), ("a.md", "markdown"), ("a.txt", None)],
    )
    def test_format_from_suffix(self, name, expected):
        assert format_from_suffix(name) == expected


class TestOutputRenderer:
    def test_without_template_data_is_serialized(self, tmp_path):
        out = tmp_path / "nested" / "out.json"

        result = OutputRenderer().render(RenderRequest(DATA, out, "json"))

        assert isinstance(result, Success)
        assert result.value == out
        assert json.loads(out.read_text()) == DATA

    def test_structured_template_output_as_yaml(self, write_file, tmp_path):
        template = write_file(
            "templates/main.json",
            json.dumps({"name": "{title}", "size": "{{count}}", "entries": ["{@items}"]}),
        )
        items = write_file("templates/item.yaml", "tag: '{value}'\n")
        out = tmp_path / "out.yaml"

        result = OutputRenderer().render(
            RenderRequest(
                DATA,
                out,
                "yaml",
                template_path=template,
                items_template_path=items,
                items_data=({"value": "a"}, {"value": "b"}),
            )
        )

        assert isinstance(result, Success)
        assert yaml.safe_load(out.read_text()) == {
            "name": "Registry",
            "size": 2,
            "entries": [{"tag": "a"}, {"tag": "b"}],
        }

    def test_structured_template_output_as_markdown(self, write_file, tmp_path):
        template = write_file("main.yaml", "title: '{title}'\n")

        content = OutputRenderer().render_content(
            RenderRequest(DATA, tmp_path / "out.md", "markdown", template_path=template)
        )

        assert content == "---\ntitle: Registry\n---\n"

    def test_text_template_is_the_whole_document(self, write_file, tmp_path):
        template = write_file("main.md", "# {title}\n\n{@items}\n")
        items = write_file("item.txt", "- {value}")

        content = OutputRenderer().render_content(
            RenderRequest(
                DATA,
                tmp_path / "out.json",
                "json",
                template_path=template,
                items_template_path=items,
                items_data=({"value": "a"},),
            )
        )

        assert content == "# Registry\n\n- a\n"

    def test_invalid_structured_template(self, write_file, tmp_path):
        template = write_file("broken.json", "{nope")

        result = OutputRenderer().render(
            RenderRequest(DATA, tmp_path / "out.json", "json", template_path=template)
        )

        assert isinstance(result, Failure)
        assert isinstance(result.error, RenderError)
        assert not (tmp_path / "out.json").exists()

    def test_missing_template(self, tmp_path):
        result = OutputRenderer().render(
            RenderRequest(DATA, tmp_path / "out.json", "json", template_path=tmp_path / "nope.json")
        )

        assert isinstance(result, Failure)
        assert "Cannot read template" in result.error.message
