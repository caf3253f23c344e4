"""End-to-end runs over real files on disk."""

import json

import pytest
import yaml

from frontmatter_schema import run_pipeline
from frontmatter_schema.config.types import FrozenConfig
from frontmatter_schema.pipeline.states import CompletedState, FailedState

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_root_derivation_collects_unique_names(write_schema, write_docs, pipeline_config, tmp_path):
    write_schema({"x-derived-from": "commands[].name", "x-derived-unique": True})
    write_docs(
        {
            "a.md": "commands:\n  - name: a\n  - name: b\n",
            "b.md": "commands:\n  - name: a\n",
        }
    )

    result = await run_pipeline(pipeline_config())

    assert isinstance(result.final_state, CompletedState)
    output = json.loads((tmp_path / "out" / "result.json").read_text())
    assert output["derived"] == ["a", "b"]


@pytest.mark.asyncio
async def test_registry_with_templates_and_shared_definitions(
    write_schema, write_file, write_docs, pipeline_config, tmp_path
):
    write_schema(
        {
            "definitions": {
                "Command": {
                    "type": "object",
                    "properties": {"name": {"type": "string"}, "level": {"type": "string"}},
                }
            }
        },
        name="schemas/common.json",
    )
    write_schema(
        {
            "type": "object",
            "x-template": "templates/registry.json",
            "x-template-items": "templates/command.json",
            "properties": {
                "version": {"type": "string"},
                "tools": {
                    "type": "object",
                    "properties": {
                        "commands": {
                            "type": "array",
                            "x-frontmatter-part": True,
                            "x-jmespath-filter": "[?level=='public' || level=='beta']",
                            "items": {"$ref": "common.json#/definitions/Command"},
                        },
                        "levels": {
                            "x-derived-from": "commands[].level",
                            "x-derived-unique": True,
                        },
                    },
                },
            },
        },
        name="schemas/registry.json",
    )
    write_file(
        "schemas/templates/registry.json",
        json.dumps(
            {
                "version": "{version}",
                "levels": "{tools.levels}",
                "commands": ["{@items}"],
            }
        ),
    )
    write_file(
        "schemas/templates/command.json",
        json.dumps({"id": "{name}", "label": "{name} ({level})"}),
    )
    write_docs(
        {
            "01-meta.md": "version: '1.2'\ntools:\n  commands:\n    - name: init\n      level: public\n",
            "02-build.md": "name: build\nlevel: beta\n",
            "03-debug.md": "name: debug\nlevel: internal\n",
        }
    )

    config = pipeline_config(
        schema_path="schemas/registry.json",
        output_path="dist/registry.yaml",
        settings=FrozenConfig(parallel=True, min_files_for_parallel=2),
    )
    result = await run_pipeline(config)

    assert isinstance(result.final_state, CompletedState), result.final_state
    assert result.final_state.output_format == "yaml"
    output = yaml.safe_load((tmp_path / "dist" / "registry.yaml").read_text())
    assert output == {
        "version": "1.2",
        "levels": ["public", "beta"],
        "commands": [
            {"id": "init", "label": "init (public)"},
            {"id": "build", "label": "build (beta)"},
        ],
    }


@pytest.mark.asyncio
async def test_text_template_to_markdown(write_schema, write_file, write_docs, pipeline_config, tmp_path):
    write_file("index.md.tpl", "# Index ({count} pages)\n\n{@items}\n")
    write_file("item.txt", "- [{title}]({slug})")
    write_schema({"x-template": "index.md.tpl", "x-template-items": "item.txt"})
    write_docs(
        {
            "a.md": "title: Alpha\nslug: alpha\ncount: 2\n",
            "b.md": "title: Beta\nslug: beta\n",
        }
    )

    result = await run_pipeline(pipeline_config(output_path="site/index.md"))

    assert isinstance(result.final_state, CompletedState)
    assert result.final_state.output_format == "markdown"
    assert (tmp_path / "site" / "index.md").read_text() == (
        "# Index (2 pages)\n\n- [Alpha](alpha)\n- [Beta](beta)\n"
    )


@pytest.mark.asyncio
async def test_schema_cycle_fails_before_reading_documents(write_schema, write_docs, pipeline_config):
    write_schema({"properties": {"node": {"$ref": "node.json"}}})
    write_schema({"properties": {"child": {"$ref": "node.json"}}}, name="node.json")
    write_docs({"a.md": "title: A\n"})

    result = await run_pipeline(pipeline_config())

    final = result.final_state
    assert isinstance(final, FailedState)
    assert final.stage == "schema-loading"
    assert final.error.kind == "CircularReference"
    assert result.commands_executed == ("Initialize", "LoadSchema")
