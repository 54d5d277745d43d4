"""Tests for relation edge inference."""
from Schema.schema_model import (
    Column, ColumnType, DeclaredRelation, ForeignKey, RelationEdge, RelationKind, Table
)
from core import resolve_relations, run_analysis


def _table(name, *columns, foreign_keys=()):
    cols = [Column("id", ColumnType.ID, is_primary_key=True)]
    cols += [Column(c, ColumnType.FOREIGN_ID, is_foreign_key=True) if c.endswith("_id")
             else Column(c, ColumnType.STRING) for c in columns]
    return Table(name, cols, list(foreign_keys))


def _tables(*tables):
    return {t.name: t for t in tables}


class TestForeignKeyEdges:
    def test_declared_relation_on_linked_pair_is_suppressed(self):
        tables = _tables(_table("users", "name"), _table("posts", "title", "user_id"))
        declared = [DeclaredRelation("User", RelationKind.HAS_MANY, "Post", "posts")]
        edges = resolve_relations(tables, declared)
        assert edges == [RelationEdge("posts", "users", RelationKind.BELONGS_TO, "user_id")]
        assert edges[0].edge_id == "posts-users-user_id"

    def test_pivot_table_links_both_sides(self):
        tables = _tables(_table("roles", "name"), _table("users", "name"),
                         _table("role_user", "role_id", "user_id"))
        edges = resolve_relations(tables)
        assert [(e.source, e.target, e.origin_column) for e in edges] == [
            ("role_user", "roles", "role_id"),
            ("role_user", "users", "user_id"),
        ]

    def test_second_reference_between_same_tables_is_dropped(self):
        # Known limitation: one edge per table pair, so editor_id never gets its own edge
        posts = _table("posts", "user_id", "editor_id",
                       foreign_keys=[ForeignKey("user_id", "users"), ForeignKey("editor_id", "users")])
        edges = resolve_relations(_tables(_table("users"), posts))
        assert [e.origin_column for e in edges] == ["user_id"]

    def test_naming_convention_before_explicit_target(self):
        # category_id follows the convention even though the constraint names another table
        posts = _table("posts", "category_id", foreign_keys=[ForeignKey("category_id", "topics")])
        edges = resolve_relations(_tables(_table("categories"), _table("topics"), posts))
        assert [(e.source, e.target) for e in edges] == [("posts", "categories")]

    def test_singular_and_bare_table_names(self):
        tables = _tables(_table("person"), _table("staff"),
                         _table("badges", "person_id", "staff_id"))
        edges = resolve_relations(tables)
        assert [e.target for e in edges] == ["person", "staff"]

    def test_explicit_target_is_the_fallback(self):
        posts = Table("posts", [Column("id", ColumnType.ID, is_primary_key=True),
                                Column("author", ColumnType.UNSIGNED_BIG_INTEGER, is_foreign_key=True)],
                      [ForeignKey("author", "users")])
        edges = resolve_relations(_tables(_table("users"), posts))
        assert edges == [RelationEdge("posts", "users", RelationKind.BELONGS_TO, "author")]

    def test_unresolvable_reference_and_self_reference(self):
        comments = _table("comments", "ghost_id", "comment_id")
        assert resolve_relations(_tables(comments)) == []


class TestDeclaredEdges:
    def test_model_names_resolve_through_singular_table_names(self):
        tables = _tables(_table("users"), _table("roles"))
        declared = [DeclaredRelation("User", RelationKind.BELONGS_TO_MANY, "Role", "roles")]
        assert resolve_relations(tables, declared) == [
            RelationEdge("users", "roles", RelationKind.BELONGS_TO_MANY)
        ]

    def test_bound_table_wins_over_name_matching(self):
        tables = _tables(_table("articles"), _table("blog_posts"), _table("tags"))
        declared = [DeclaredRelation("Article", RelationKind.HAS_MANY, "Tag")]
        edges = resolve_relations(tables, declared, model_tables={"Article": "blog_posts"})
        assert edges == [RelationEdge("blog_posts", "tags", RelationKind.HAS_MANY)]

    def test_plural_table_wins_over_singular_twin(self):
        tables = _tables(_table("user"), _table("users"), _table("posts"))
        declared = [DeclaredRelation("User", RelationKind.HAS_MANY, "Post", "posts")]
        assert resolve_relations(tables, declared) == [
            RelationEdge("users", "posts", RelationKind.HAS_MANY)
        ]

    def test_unknown_models_are_skipped(self):
        declared = [DeclaredRelation("Invoice", RelationKind.HAS_ONE, "Payment")]
        assert resolve_relations(_tables(_table("users")), declared) == []


class TestProjectAnalysis:
    def test_fixture_project(self, project_sources):
        analysis = run_analysis(project_sources)
        assert [(e.source, e.target, e.kind) for e in analysis.edges] == [
            ("posts", "users", RelationKind.BELONGS_TO),
            ("role_user", "roles", RelationKind.BELONGS_TO),
            ("role_user", "users", RelationKind.BELONGS_TO),
            ("users", "roles", RelationKind.BELONGS_TO_MANY),
        ]
        assert analysis.snapshot.orphan_tables() == ["roles", "role_user"]
        assert analysis.snapshot.orphan_models() == []
        assert analysis.stats == {"migrations": 3, "models": 2, "tables": 4, "relations": 4}

    def test_to_dict_shape(self, project_sources):
        data = run_analysis(project_sources).to_dict()
        assert set(data) == {"schema", "edges", "orphan_tables", "orphan_models", "stats"}
        assert data["edges"][0] == {
            "id": "posts-users-user_id",
            "source": "posts",
            "target": "users",
            "kind": "belongsTo",
            "origin_column": "user_id",
        }
        assert data["schema"]["tables"]["role_user"]["is_pivot"]


class TestPivotFlag:
    def test_join_table_naming_and_key_count(self):
        pivot = _table("role_user", "role_id", "user_id",
                       foreign_keys=[ForeignKey("role_id", "roles"), ForeignKey("user_id", "users")])
        users = _table("users", "team_id", foreign_keys=[ForeignKey("team_id", "teams")])
        assert pivot.is_pivot
        assert not users.is_pivot
        assert not _table("post_tags", "post_id", "tag_id",
                          foreign_keys=[ForeignKey("post_id", "posts"), ForeignKey("tag_id", "tags")]).is_pivot
