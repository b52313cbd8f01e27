"""
Tests for template parsing and the Template/Skill dataclasses.

Tests verify that:
- Names are normalized from paths and headers
- Metadata headers are optional and validated
- Placeholders, references and metadata are extracted
- Templates are immutable
"""

import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib

import pytest as _pytest

import quire.templates.errors as errors
import quire.templates.template as template


def _parse(
    content: str,
    kind: str = "command",
    default_name: str = "sample",
) -> template.Template:
    return template.parse_template(
        content,
        path=_pathlib.Path("/templates/sample.md"),
        kind=kind,
        default_name=default_name,
    )


class TestNormalizeName:
    """Tests for normalize_name and name_from_path."""

    def test_lowercases_and_hyphenates(self) -> None:
        """Case, underscores and whitespace are normalized."""
        assert template.normalize_name("Create_PR") == "create-pr"
        assert template.normalize_name("  Hello   World ") == "hello-world"

    def test_collapses_repeated_separators(self) -> None:
        """Runs of separators collapse into a single hyphen."""
        assert template.normalize_name("a__b--c") == "a-b-c"
        assert template.normalize_name("-edge-") == "edge"

    def test_joins_segments_with_colon(self) -> None:
        """Path and namespace separators become ':'."""
        assert template.normalize_name("git/Create_PR") == "git:create-pr"
        assert template.normalize_name("Git:Push") == "git:push"
        assert template.normalize_name("a//b") == "a:b"

    def test_name_from_path_strips_suffix(self) -> None:
        """The .md suffix is removed before normalizing."""
        assert template.name_from_path(_pathlib.PurePath("git/Push_Branch.md")) == "git:push-branch"
        assert template.name_from_path(_pathlib.PurePath("v1.2.md")) == "v1.2"


class TestSplitQualifier:
    """Tests for split_qualifier."""

    def test_kind_prefix(self) -> None:
        """skill: and command: prefixes name a collection."""
        assert template.split_qualifier("skill:code-review") == ("skill", "code-review")
        assert template.split_qualifier("command:git:push") == ("command", "git:push")

    def test_namespace_is_not_a_kind(self) -> None:
        """Other prefixes stay part of the name."""
        assert template.split_qualifier("git:push") == (None, "git:push")
        assert template.split_qualifier("skill") == (None, "skill")


class TestSplitMarkdown:
    """Tests for split_markdown."""

    def test_no_header_is_all_body(self) -> None:
        """A file without a header has empty metadata."""
        data, body = template.split_markdown("# Title\n\nText\n")
        assert data == {}
        assert body == "# Title\n\nText"

    def test_empty_header(self) -> None:
        """An empty header block is allowed."""
        data, body = template.split_markdown("---\n---\nBody")
        assert data == {}
        assert body == "Body"

    def test_header_and_body(self) -> None:
        """Header YAML and body are separated."""
        data, body = template.split_markdown("---\ndescription: x\n---\n\nBody text\n")
        assert data == {"description": "x"}
        assert body == "Body text"

    def test_unterminated_header_raises(self) -> None:
        """A header without a closing line is invalid."""
        with _pytest.raises(errors.InvalidTemplateError, match="not terminated"):
            template.split_markdown("---\ndescription: x\nBody")

    def test_invalid_yaml_raises(self) -> None:
        """Malformed YAML is reported."""
        with _pytest.raises(errors.InvalidTemplateError, match="Invalid YAML"):
            template.split_markdown("---\nname: [oops\n---\nBody")

    def test_non_mapping_header_raises(self) -> None:
        """The header must be a mapping."""
        with _pytest.raises(errors.InvalidTemplateError, match="must be a mapping"):
            template.split_markdown("---\n- a\n- b\n---\nBody")


class TestParseTemplate:
    """Tests for parse_template."""

    def test_description_from_header(self) -> None:
        """The header description wins."""
        t = _parse("---\ndescription: Create a PR\n---\n# Heading\n")
        assert t.description == "Create a PR"

    def test_description_from_first_body_line(self) -> None:
        """Without a header description, the first body line is used."""
        t = _parse("\n\n## Commit changes\n\nMore text")
        assert t.description == "Commit changes"

    def test_default_name_used(self) -> None:
        """The path-derived name is used when the header has none."""
        t = _parse("Body", default_name="git:push")
        assert t.name == "git:push"

    def test_header_name_overrides_and_is_normalized(self) -> None:
        """A header name replaces the derived one."""
        t = _parse("---\nname: My_Command\n---\nBody")
        assert t.name == "my-command"

    def test_placeholders_extracted(self) -> None:
        """Placeholders are listed in order of appearance."""
        t = _parse("Status !`git status`, args $ARGUMENTS, first $1, {{branch}}")
        assert [(p.kind, p.name) for p in t.placeholders] == [
            ("shell", "git status"),
            ("arguments", "ARGUMENTS"),
            ("positional", "1"),
            ("named", "branch"),
        ]
        assert t.shell_commands == ["git status"]

    def test_references_from_header_and_body(self) -> None:
        """Header lists and [[links]] are merged without duplicates."""
        content = """---
references: [Commit]
see-also: code_review
---
See [[commit]] and [[Structured Logging|the logging guide]].
"""
        t = _parse(content)
        assert t.references == ("commit", "code-review", "structured-logging")

    def test_self_reference_dropped(self) -> None:
        """A template never references itself."""
        t = _parse("See [[sample]] and [[command:sample]] and [[other]].")
        assert t.references == ("other",)

    def test_metadata_is_flat_strings(self) -> None:
        """Scalars become strings and lists are joined."""
        content = """---
description: Deploy
allowed-tools: [Bash, Read]
interactive: true
retries: 3
references: [other]
---
Body
"""
        t = _parse(content)
        assert dict(t.metadata) == {
            "description": "Deploy",
            "allowed-tools": "Bash, Read",
            "interactive": "true",
            "retries": "3",
        }

    def test_nested_mapping_metadata_rejected(self) -> None:
        """Mappings are not valid metadata values."""
        with _pytest.raises(errors.InvalidTemplateError, match="got mapping"):
            _parse("---\nowner:\n  team: infra\n---\nBody")

    def test_invalid_header_field_rejected(self) -> None:
        """Known header fields are validated."""
        with _pytest.raises(errors.InvalidTemplateError, match="Invalid metadata header"):
            _parse("---\nreferences: {a: b}\n---\nBody")

    def test_command_is_plain_template(self) -> None:
        """Commands are Template instances, not Skills."""
        t = _parse("Body")
        assert type(t) is template.Template
        assert t.kind == "command"


class TestSkill:
    """Tests for the Skill subclass."""

    def test_author_and_version(self) -> None:
        """Author and version are read from metadata."""
        s = _parse("---\nauthor: Jane\nversion: 1.2\n---\nBody", kind="skill")
        assert isinstance(s, template.Skill)
        assert s.kind == "skill"
        assert s.author == "Jane"
        assert s.version == "1.2"

    def test_list_author_is_joined(self) -> None:
        """A list of authors reads as one comma-separated string."""
        s = _parse("---\nauthor: [Alice, Bob]\n---\nBody", kind="skill")
        assert isinstance(s, template.Skill)
        assert s.author == "Alice, Bob"
        assert s.metadata["author"] == "Alice, Bob"

    def test_version_kept_as_written(self) -> None:
        """Unquoted version numbers are not read as floats."""
        s = _parse("---\nversion: 1.10\n---\nBody", kind="skill")
        assert isinstance(s, template.Skill)
        assert s.version == "1.10"
        assert s.metadata["version"] == "1.10"

        s = _parse("---\nversion: 2.0\nbuild: 007\n---\nBody", kind="skill")
        assert s.metadata["version"] == "2.0"
        assert s.metadata["build"] == "007"

    def test_missing_author_is_none(self) -> None:
        """Absent metadata gives None."""
        s = _parse("Body", kind="skill")
        assert isinstance(s, template.Skill)
        assert s.author is None
        assert s.version is None


class TestImmutability:
    """Templates cannot be changed after loading."""

    def test_fields_are_frozen(self) -> None:
        """Assigning a field raises."""
        t = _parse("Body")
        with _pytest.raises(_dataclasses.FrozenInstanceError):
            t.body = "changed"  # type: ignore[misc]

    def test_metadata_is_read_only(self) -> None:
        """The metadata mapping rejects writes."""
        t = _parse("---\nauthor: Jane\n---\nBody")
        with _pytest.raises(TypeError):
            t.metadata["author"] = "Other"  # type: ignore[index]


class TestLoadTemplate:
    """Tests for load_template."""

    def test_loads_from_file(self, tmp_path: _pathlib.Path) -> None:
        """File content is parsed and the path recorded."""
        path = tmp_path / "deploy.md"
        path.write_text("---\ndescription: Deploy\n---\nRun $1", encoding="utf-8")
        t = template.load_template(path, kind="command", default_name="deploy")
        assert t.name == "deploy"
        assert t.path == path
        assert t.body == "Run $1"

    def test_warns_when_body_exceeds_soft_limit(
        self,
        tmp_path: _pathlib.Path,
        caplog: _pytest.LogCaptureFixture,
    ) -> None:
        """Long bodies load with a warning."""
        path = tmp_path / "long.md"
        path.write_text("\n".join(f"line {i}" for i in range(20)), encoding="utf-8")

        with caplog.at_level(_logging.WARNING, logger="quire.templates.template"):
            t = template.load_template(
                path, kind="command", default_name="long", body_soft_limit=10
            )

        assert t.body_line_count == 20
        assert "exceeds recommended body limit" in caplog.text

    def test_to_dict(self) -> None:
        """to_dict is JSON friendly."""
        t = _parse("---\nsee-also: [x]\n---\nUse $1")
        data = t.to_dict()
        assert data["name"] == "sample"
        assert data["references"] == ["x"]
        assert data["placeholders"] == [{"kind": "positional", "name": "1", "raw": "$1"}]
