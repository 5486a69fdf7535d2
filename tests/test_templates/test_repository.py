"""Tests for template bundle loading, listing and validation.

Covers:
- Manifest assembly with defaults and camelCase keys
- Missing bundles, manifests and files
- Malformed manifests and unsafe file paths
- list_templates filtering and ordering
- validate_template / template_problems
- The packaged bundles
"""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from stackgen.config import DEFAULT_TEMPLATES_DIR
from stackgen.errors import (
    FileSystemError,
    TemplateManifestMissing,
    TemplateNotFound,
    TemplateStructureInvalid,
)
from stackgen.filesystem import LocalFileSystem
from stackgen.models import TemplateBundle, TemplateFile, TemplateVariable
from stackgen.templates import TemplateRepository, get_engine, is_safe_relative_path

pytestmark = pytest.mark.unit


@pytest.fixture
def repository(templates_dir: Path, local_fs: LocalFileSystem) -> TemplateRepository:
    return TemplateRepository(templates_dir, local_fs)


# ---------------------------------------------------------------------------
# load_template
# ---------------------------------------------------------------------------


class TestLoadTemplate:
    async def test_loads_sample_bundle(self, repository, templates_dir: Path):
        bundle = await repository.load_template("sample-bundle")

        assert bundle.name == "sample-bundle"
        assert bundle.version == "2.1.0"
        assert bundle.description == "Bundle used by the test suite"
        assert bundle.author == "tests"
        assert bundle.supported_types == ["backend-only", "full-stack"]
        assert bundle.engine == "jinja2"
        assert bundle.source_dir == templates_dir / "sample-bundle"
        assert [f.path for f in bundle.files] == [
            "README.md",
            "src/index.js",
            "src/lib/util/helpers.js",
            "bin/run.sh",
            "assets/raw.txt",
        ]

    async def test_file_flags(self, repository):
        bundle = await repository.load_template("sample-bundle")
        by_path = {f.path: f for f in bundle.files}

        assert by_path["bin/run.sh"].permissions == "755"
        assert by_path["assets/raw.txt"].is_template is False
        assert by_path["README.md"].is_template is True
        assert by_path["README.md"].content.startswith("# {{ name }}")

    async def test_variables(self, repository):
        bundle = await repository.load_template("sample-bundle")
        assert bundle.config.variables == [
            TemplateVariable(name="port", type="number", default=3000),
            TemplateVariable(name="owner", type="string", required=True),
        ]
        assert bundle.config.hooks is None
        assert bundle.config.dependencies is None

    async def test_manifest_defaults(self, repository, make_bundle):
        make_bundle("minimal", {"supportedTypes": ["full-stack"]})

        bundle = await repository.load_template("minimal")

        assert bundle.name == "minimal"
        assert bundle.version == "1.0.0"
        assert bundle.description == ""
        assert bundle.files == []

    async def test_hooks_and_dependencies(self, repository, make_bundle):
        make_bundle("hooked", {
            "supportedTypes": ["backend-only"],
            "hooks": {"preGeneration": ["echo pre"], "postGeneration": ["echo post"]},
            "dependencies": {"runtime": ["express"], "system": ["node"]},
            "engine": "jinja2-strict",
        })

        bundle = await repository.load_template("hooked")

        assert bundle.config.hooks.pre_generation == ["echo pre"]
        assert bundle.config.hooks.post_generation == ["echo post"]
        assert bundle.config.dependencies.runtime == ["express"]
        assert bundle.config.dependencies.system == ["node"]
        assert bundle.engine == "jinja2-strict"

    async def test_missing_files_are_skipped(self, repository, make_bundle, caplog):
        make_bundle(
            "partial",
            {"supportedTypes": ["backend-only"], "files": ["present.txt", "absent.txt"]},
            {"present.txt": "here"},
        )

        with caplog.at_level(logging.WARNING, logger="stackgen"):
            bundle = await repository.load_template("partial")

        assert [f.path for f in bundle.files] == ["present.txt"]
        assert "absent.txt" in caplog.text

    @pytest.mark.parametrize("raw_permissions", ["0644", "755"])
    async def test_unquoted_permissions_are_rejected(
        self, repository, make_bundle, templates_dir: Path, raw_permissions
    ):
        bundle_dir = make_bundle("perms", None, {"run.sh": "echo"})
        (bundle_dir / "template.yml").write_text(
            "supportedTypes: [backend-only]\n"
            "files:\n"
            "  - path: run.sh\n"
            f"    permissions: {raw_permissions}\n",
            encoding="utf-8",
        )

        with pytest.raises(TemplateStructureInvalid, match="quoted octal"):
            await repository.load_template("perms")

    async def test_quoted_leading_zero_permissions_kept(self, repository, make_bundle):
        make_bundle(
            "perms",
            {"supportedTypes": ["backend-only"], "files": [{"path": "run.sh", "permissions": "0644"}]},
            {"run.sh": "echo"},
        )
        bundle = await repository.load_template("perms")
        assert bundle.files[0].permissions == "0644"

    @pytest.mark.parametrize("flag", ["false", "no", 0, None])
    async def test_is_template_must_be_boolean(self, repository, make_bundle, flag):
        make_bundle(
            "flags",
            {"supportedTypes": ["backend-only"], "files": [{"path": "a.txt", "isTemplate": flag}]},
            {"a.txt": "{{ name }}"},
        )
        with pytest.raises(TemplateStructureInvalid, match="isTemplate"):
            await repository.load_template("flags")

    async def test_crlf_content_is_kept(self, repository, make_bundle):
        bundle_dir = make_bundle(
            "crlf",
            {"supportedTypes": ["backend-only"], "files": [{"path": "run.bat", "isTemplate": False}]},
        )
        target = bundle_dir / "files" / "run.bat"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"@echo off\r\necho hi\r\n")

        bundle = await repository.load_template("crlf")
        assert bundle.files[0].content == "@echo off\r\necho hi\r\n"

    async def test_empty_bundle_warns_once(self, repository, make_bundle, caplog):
        make_bundle("empty", {"supportedTypes": ["backend-only"]})
        with caplog.at_level(logging.WARNING, logger="stackgen"):
            await repository.load_template("empty")
        assert caplog.text.count("has no files") == 1

    async def test_invalid_bundle_logs_problems_once(self, repository, make_bundle, caplog):
        make_bundle("typeless", {"files": []})
        with caplog.at_level(logging.ERROR, logger="stackgen"):
            with pytest.raises(TemplateStructureInvalid):
                await repository.load_template("typeless")
        assert caplog.text.count("Template validation failed") == 1

    async def test_unknown_bundle(self, repository):
        with pytest.raises(TemplateNotFound, match="does-not-exist"):
            await repository.load_template("does-not-exist")

    @pytest.mark.parametrize("name", ["../templates", "a/b", "/etc", ""])
    async def test_unsafe_names_are_not_found(self, repository, name):
        with pytest.raises(TemplateNotFound):
            await repository.load_template(name)

    async def test_missing_manifest(self, repository, make_bundle):
        make_bundle("no-manifest", None, {"README.md": "x"})
        with pytest.raises(TemplateManifestMissing):
            await repository.load_template("no-manifest")

    async def test_malformed_yaml(self, repository, templates_dir: Path):
        bundle_dir = templates_dir / "broken"
        bundle_dir.mkdir()
        (bundle_dir / "template.yml").write_text("name: [unclosed\n", encoding="utf-8")

        with pytest.raises(TemplateStructureInvalid, match="YAML"):
            await repository.load_template("broken")

    async def test_manifest_must_be_mapping(self, repository, templates_dir: Path):
        bundle_dir = templates_dir / "listy"
        bundle_dir.mkdir()
        (bundle_dir / "template.yml").write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(TemplateStructureInvalid):
            await repository.load_template("listy")

    async def test_files_must_be_a_list(self, repository, make_bundle):
        make_bundle("bad-files", {"supportedTypes": ["backend-only"], "files": "README.md"})
        with pytest.raises(TemplateStructureInvalid, match="files"):
            await repository.load_template("bad-files")

    async def test_unsafe_file_path(self, repository, make_bundle):
        make_bundle("escape", {"supportedTypes": ["backend-only"], "files": ["../../etc/passwd"]})
        with pytest.raises(TemplateStructureInvalid, match="Unsafe"):
            await repository.load_template("escape")

    async def test_missing_supported_types_is_invalid(self, repository, make_bundle):
        make_bundle("typeless", {"files": []})
        with pytest.raises(TemplateStructureInvalid) as exc_info:
            await repository.load_template("typeless")
        assert "at least one project type" in str(exc_info.value)

    async def test_invalid_variable(self, repository, make_bundle):
        make_bundle("bad-var", {"supportedTypes": ["backend-only"], "variables": [{"name": "x"}]})
        with pytest.raises(TemplateStructureInvalid, match="Invalid variable"):
            await repository.load_template("bad-var")

    async def test_read_failure_propagates(self, templates_dir: Path):
        file_system = MagicMock()
        file_system.exists = AsyncMock(return_value=True)
        file_system.read_file = AsyncMock(
            side_effect=FileSystemError("denied", "template.yml", "read")
        )
        repository = TemplateRepository(templates_dir, file_system)

        with pytest.raises(FileSystemError):
            await repository.load_template("sample-bundle")


# ---------------------------------------------------------------------------
# list_templates
# ---------------------------------------------------------------------------


class TestListTemplates:
    async def test_lists_sorted_names(self, repository):
        assert await repository.list_templates() == ["basic-project", "sample-bundle"]

    async def test_skips_unparseable_and_missing_manifests(
        self, repository, make_bundle, templates_dir: Path
    ):
        make_bundle("no-manifest", None, {"README.md": "x"})
        broken = templates_dir / "broken"
        broken.mkdir()
        (broken / "template.yml").write_text("name: [unclosed\n", encoding="utf-8")

        assert await repository.list_templates() == ["basic-project", "sample-bundle"]

    async def test_missing_root_is_empty(self, local_fs, tmp_path: Path):
        repository = TemplateRepository(tmp_path / "nowhere", local_fs)
        assert await repository.list_templates() == []

    async def test_glob_failure_degrades_to_empty(self, templates_dir: Path):
        file_system = MagicMock()
        file_system.exists = AsyncMock(return_value=True)
        file_system.glob = AsyncMock(side_effect=FileSystemError("boom", "x", "glob"))
        repository = TemplateRepository(templates_dir, file_system)

        assert await repository.list_templates() == []


# ---------------------------------------------------------------------------
# validate_template
# ---------------------------------------------------------------------------


class TestValidateTemplate:
    def _bundle(self, **overrides) -> TemplateBundle:
        fields = {
            "name": "ok",
            "version": "1.0.0",
            "supported_types": ["backend-only"],
            "files": [TemplateFile(path="README.md")],
        }
        fields.update(overrides)
        return TemplateBundle(**fields)

    def test_valid_bundle(self, repository):
        assert repository.validate_template(self._bundle()) is True
        assert repository.template_problems(self._bundle()) == []

    def test_empty_file_list_is_valid(self, repository):
        assert repository.validate_template(self._bundle(files=[])) is True

    def test_missing_name_and_version(self, repository):
        problems = repository.template_problems(self._bundle(name="", version=" "))
        assert "Template name is required" in problems
        assert "Template version is required" in problems

    def test_empty_supported_types(self, repository):
        assert repository.validate_template(self._bundle(supported_types=[])) is False

    def test_unsafe_path(self, repository):
        bundle = self._bundle(files=[TemplateFile(path="/abs/file")])
        assert repository.validate_template(bundle) is False

    def test_unknown_variable_type_only_warns(self, repository, caplog):
        bundle = self._bundle()
        bundle.config.variables.append(TemplateVariable(name="v", type="date"))
        with caplog.at_level(logging.WARNING, logger="stackgen"):
            assert repository.validate_template(bundle) is True
        assert "unknown type" in caplog.text

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("README.md", True),
            ("src/index.js", True),
            ("", False),
            (".", False),
            ("../x", False),
            ("a/../../x", False),
            ("/etc/passwd", False),
            ("a\\b", False),
        ],
    )
    def test_is_safe_relative_path(self, path, expected):
        assert is_safe_relative_path(path) is expected


# ---------------------------------------------------------------------------
# Packaged bundles
# ---------------------------------------------------------------------------


class TestPackagedBundles:
    @pytest.fixture
    def packaged(self, local_fs) -> TemplateRepository:
        return TemplateRepository(DEFAULT_TEMPLATES_DIR, local_fs)

    async def test_lists_builtin_bundles(self, packaged):
        assert await packaged.list_templates() == [
            "basic-project",
            "full-stack-mern",
            "node-express-api",
            "react-spa",
        ]

    @pytest.mark.parametrize(
        "name", ["basic-project", "full-stack-mern", "node-express-api", "react-spa"]
    )
    async def test_builtin_bundle_loads_and_parses(self, packaged, name):
        bundle = await packaged.load_template(name)
        engine = get_engine(bundle.engine)

        assert bundle.name == name
        assert bundle.files
        assert packaged.validate_template(bundle)
        for file in bundle.files:
            if file.is_template:
                assert engine.validate(file.content), file.path
