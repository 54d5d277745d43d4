"""Tests for folding migration blocks into a schema snapshot."""
from conftest import POSTS_MIGRATION, USERS_MIGRATION, wrap_up
from Schema.schema_model import ColumnType, ForeignKey
from core import SchemaBuilder, chronological
from grammar.migration_extractor import extract_migration
from parser_factory import make_source


def _alter(table: str, statements: str) -> str:
    return wrap_up(
        f"        Schema::table('{table}', function (Blueprint $table) {{\n"
        f"{statements}"
        "        });\n"
    )


def _build(*files):
    builder = SchemaBuilder()
    snapshot = builder.build(make_source(f"database/migrations/{name}", text) for name, text in files)
    return builder, snapshot


class TestChronologicalOrder:
    def test_sorted_by_file_name_then_path(self):
        sources = [
            make_source("database/migrations/2024_02_01_000000_b.php", ""),
            make_source("modules/x/database/migrations/2024_01_01_000000_a.php", ""),
            make_source("database/migrations/2024_01_01_000000_a.php", ""),
        ]
        assert [s.path for s in chronological(sources)] == [
            "database/migrations/2024_01_01_000000_a.php",
            "modules/x/database/migrations/2024_01_01_000000_a.php",
            "database/migrations/2024_02_01_000000_b.php",
        ]

    def test_alter_before_create_in_input_still_applies(self):
        alter = _alter("users", "            $table->string('nickname')->nullable();\n")
        _, snapshot = _build(
            ("2024_06_01_000000_add_nickname.php", alter),
            ("2014_10_12_000000_create_users_table.php", USERS_MIGRATION),
        )
        assert snapshot.get_table("users").get_column("nickname").nullable


class TestCreate:
    def test_tables_and_sources(self, project_sources):
        builder = SchemaBuilder()
        snapshot = builder.build(project_sources)
        assert list(snapshot.tables) == ["users", "posts", "roles", "role_user"]
        assert snapshot.sources["role_user"] == ["database/migrations/2024_01_02_000000_create_roles_table.php"]
        assert set(snapshot.models) == {"User", "Post"}
        assert "CREATE:users" in builder.changes

    def test_later_create_overwrites(self):
        replacement = wrap_up(
            "        Schema::create('users', function (Blueprint $table) {\n"
            "            $table->uuid('id')->primary();\n"
            "        });\n"
        )
        _, snapshot = _build(
            ("2014_10_12_000000_create_users_table.php", USERS_MIGRATION),
            ("2024_01_01_000000_recreate_users.php", replacement),
        )
        users = snapshot.get_table("users")
        assert [c.name for c in users.columns] == ["id"]
        assert users.primary_key.type is ColumnType.UUID
        assert len(snapshot.sources["users"]) == 2

    def test_snapshot_columns_are_not_shared_with_blocks(self):
        builder = SchemaBuilder()
        blocks = extract_migration(POSTS_MIGRATION)
        builder.apply_migration(blocks, "p.php")
        builder.snapshot.tables["posts"].columns[1].name = "changed"
        assert blocks[0].columns[1].name == "title"


class TestAlter:
    def test_add_and_modify_columns(self):
        alter = _alter(
            "users",
            "            $table->string('name')->nullable()->change();\n"
            "            $table->boolean('is_admin');\n",
        )
        builder, snapshot = _build(
            ("2014_10_12_000000_create_users_table.php", USERS_MIGRATION),
            ("2024_01_01_000000_alter_users.php", alter),
        )
        users = snapshot.get_table("users")
        assert users.get_column("name").nullable
        assert users.column_index("name") == 1
        assert users.columns[-1].name == "is_admin"
        assert "COLUMN:users.is_admin" in builder.changes
        assert snapshot.sources["users"][-1] == "database/migrations/2024_01_01_000000_alter_users.php"

    def test_add_and_drop_in_one_alteration(self):
        alter = _alter("users", "            $table->dropColumn('password');\n"
                                "            $table->string('avatar')->nullable();\n")
        _, snapshot = _build(
            ("2014_10_12_000000_create_users_table.php", USERS_MIGRATION),
            ("2024_01_01_000000_alter_users.php", alter),
        )
        assert [c.name for c in snapshot.get_table("users").columns] == [
            "id", "name", "email", "email_verified_at", "remember_token", "avatar"
        ]

    def test_drop_removes_column_and_constraint(self):
        alter = _alter("posts", "            $table->dropForeign(['user_id']);\n"
                                "            $table->dropColumn('user_id');\n")
        _, snapshot = _build(
            ("2024_01_01_000000_create_posts_table.php", POSTS_MIGRATION),
            ("2024_02_01_000000_drop_user.php", alter),
        )
        posts = snapshot.get_table("posts")
        assert [c.name for c in posts.columns] == ["id", "title"]
        assert posts.foreign_keys == []

    def test_drop_foreign_by_index_name_keeps_column(self):
        alter = _alter("posts", "            $table->dropForeign('posts_user_id_foreign');\n")
        _, snapshot = _build(
            ("2024_01_01_000000_create_posts_table.php", POSTS_MIGRATION),
            ("2024_02_01_000000_drop_fk.php", alter),
        )
        posts = snapshot.get_table("posts")
        assert posts.foreign_keys == []
        assert not posts.get_column("user_id").is_foreign_key

    def test_rename_carries_the_constraint(self):
        alter = _alter("posts", "            $table->renameColumn('user_id', 'author_id');\n")
        _, snapshot = _build(
            ("2024_01_01_000000_create_posts_table.php", POSTS_MIGRATION),
            ("2024_02_01_000000_rename.php", alter),
        )
        posts = snapshot.get_table("posts")
        assert posts.get_column("author_id").type is ColumnType.FOREIGN_ID
        assert posts.foreign_keys == [ForeignKey("author_id", "users")]

    def test_rename_onto_existing_column_is_skipped(self):
        create = wrap_up(
            "        Schema::create('notes', function (Blueprint $table) {\n"
            "            $table->id();\n"
            "            $table->string('a');\n"
            "            $table->text('b');\n"
            "        });\n"
        )
        alter = _alter("notes", "            $table->renameColumn('a', 'b');\n")
        builder, snapshot = _build(
            ("2024_01_01_000000_create_notes_table.php", create),
            ("2024_02_01_000000_rename.php", alter),
        )
        notes = snapshot.get_table("notes")
        assert [c.name for c in notes.columns] == ["id", "a", "b"]
        assert notes.get_column("b").type is ColumnType.TEXT
        assert not any(change.startswith("RENAME:") for change in builder.changes)

    def test_alter_of_unknown_table_is_a_no_op(self):
        alter = _alter("ghosts", "            $table->string('boo');\n")
        builder, snapshot = _build(("2024_01_01_000000_ghosts.php", alter))
        assert snapshot.tables == {}
        assert "ghosts" not in snapshot.sources
        assert builder.changes == []

    def test_down_blocks_are_not_applied(self):
        text = (
            "<?php\n\nreturn new class extends Migration\n{\n"
            "    public function up(): void\n    {\n"
            "        Schema::table('posts', function (Blueprint $table) {\n"
            "            $table->text('body');\n"
            "        });\n"
            "    }\n\n"
            "    public function down(): void\n    {\n"
            "        Schema::table('posts', function (Blueprint $table) {\n"
            "            $table->dropColumn('body');\n"
            "        });\n"
            "    }\n};\n"
        )
        _, snapshot = _build(
            ("2024_01_01_000000_create_posts_table.php", POSTS_MIGRATION),
            ("2024_02_01_000000_add_body.php", text),
        )
        assert snapshot.get_table("posts").get_column("body") is not None
