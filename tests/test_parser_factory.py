"""Tests for path classification, project loading and extractor dispatch."""
import pytest

from Schema.schema_model import Model, SourceKind
from parser_factory import classify_path, extract_file, load_project_files, make_source


class TestClassifyPath:
    @pytest.mark.parametrize("path, kind", [
        ("database/migrations/2024_01_01_000000_create_posts_table.php", SourceKind.MIGRATION),
        ("/srv/blog/database/migrations/x.php", SourceKind.MIGRATION),
        ("database\\migrations\\x.php", SourceKind.MIGRATION),
        ("app/Models/Post.php", SourceKind.MODEL),
        ("app/User.php", SourceKind.MODEL),
        ("app/Http/Controllers/PostController.php", SourceKind.OTHER),
        ("app/Providers/AppServiceProvider.php", SourceKind.OTHER),
        ("vendor/laravel/framework/database/migrations/x.php", SourceKind.OTHER),
        ("database/migrations/notes.md", SourceKind.OTHER),
        ("routes/web.php", SourceKind.OTHER),
    ])
    def test_kinds(self, path, kind):
        assert classify_path(path) is kind

    def test_make_source_uses_file_name(self):
        source = make_source("app/Models/Post.php", "<?php")
        assert source.name == "Post.php"
        assert source.kind is SourceKind.MODEL


class TestLoadProjectFiles:
    def test_only_migrations_and_models_are_read(self, project_dir):
        sources = load_project_files(project_dir)
        assert [s.path for s in sources] == [
            "app/Models/Post.php",
            "app/Models/User.php",
            "database/migrations/2014_10_12_000000_create_users_table.php",
            "database/migrations/2024_01_01_000000_create_posts_table.php",
            "database/migrations/2024_01_02_000000_create_roles_table.php",
        ]
        assert [s.kind for s in sources].count(SourceKind.MIGRATION) == 3

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_project_files(tmp_path / "nope")


class TestExtractFile:
    def test_dispatch(self, project_sources):
        by_path = {s.path: s for s in project_sources}
        blocks = extract_file(by_path["database/migrations/2024_01_02_000000_create_roles_table.php"])
        assert [b.table for b in blocks] == ["roles", "role_user"]
        assert isinstance(extract_file(by_path["app/Models/Post.php"]), Model)

    def test_other_files_are_rejected(self):
        with pytest.raises(ValueError):
            extract_file(make_source("routes/web.php", "<?php"))
