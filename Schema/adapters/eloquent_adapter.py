"""
Eloquent Adapter - Export tables and relation edges as Laravel model classes.
"""
from typing import List, Tuple

from ..schema_model import DeclaredRelation, RelationEdge, RelationKind, SchemaSnapshot, Table
from ..naming import singularize, table_to_model


class EloquentAdapter:
    """Adapter to render Eloquent model source for a table."""

    NAMESPACE = "App\\Models"
    MODEL_DIR = "app/Models"
    SEPARATOR = "\n\n// -----------------------------------------\n\n"

    # Relation kind -> Eloquent builder method
    RELATION_METHODS = {
        RelationKind.HAS_MANY: "hasMany",
        RelationKind.BELONGS_TO: "belongsTo",
        RelationKind.HAS_ONE: "hasOne",
        RelationKind.BELONGS_TO_MANY: "belongsToMany",
    }

    @classmethod
    def relations_for_table(cls, table_name: str, edges: List[RelationEdge]) -> List[DeclaredRelation]:
        """
        Turn the edges leaving a table into model relations.

        belongsTo / hasOne accessors are named after the singular target
        table, hasMany / belongsToMany after the table itself.
        """
        model_name = table_to_model(table_name)
        relations = []
        for edge in edges:
            if edge.source != table_name:
                continue
            method_name = singularize(edge.target) if edge.kind.is_singular else edge.target
            relations.append(DeclaredRelation(
                from_model=model_name,
                kind=edge.kind,
                to_model=table_to_model(edge.target),
                method_name=method_name,
            ))
        return relations

    @classmethod
    def export_model(cls, class_name: str, table_name: str, relations: List[DeclaredRelation]) -> str:
        """Export one model class with its table binding and relation accessors."""
        methods = []
        seen = set()
        for rel in relations:
            if not rel.method_name or rel.method_name in seen:
                continue
            seen.add(rel.method_name)
            methods.append(
                f"    public function {rel.method_name}()\n"
                f"    {{\n"
                f"        return $this->{cls.RELATION_METHODS[rel.kind]}({rel.to_model}::class);\n"
                f"    }}"
            )

        lines = [
            "<?php",
            "",
            f"namespace {cls.NAMESPACE};",
            "",
            "use Illuminate\\Database\\Eloquent\\Factories\\HasFactory;",
            "use Illuminate\\Database\\Eloquent\\Model;",
            "",
            f"class {class_name} extends Model",
            "{",
            "    use HasFactory;",
            "",
            f"    protected $table = '{table_name}';",
            "",
            "    protected $guarded = [];",
        ]
        if methods:
            lines.append("")
            lines.append("\n\n".join(methods))
        lines.append("}")
        return "\n".join(lines) + "\n"

    @classmethod
    def export_table_model(cls, table: Table, edges: List[RelationEdge]) -> str:
        return cls.export_model(table_to_model(table.name), table.name, cls.relations_for_table(table.name, edges))

    @classmethod
    def model_files(cls, snapshot: SchemaSnapshot, edges: List[RelationEdge]) -> List[Tuple[str, str]]:
        """(path, content) for every table, e.g. ("app/Models/Post.php", "<?php ...")."""
        return [
            (f"{cls.MODEL_DIR}/{table_to_model(table.name)}.php", cls.export_table_model(table, edges))
            for table in snapshot.tables.values()
        ]

    @classmethod
    def export_models(cls, snapshot: SchemaSnapshot, edges: List[RelationEdge]) -> str:
        """All model classes as one bundle, separated by comment rules."""
        return cls.SEPARATOR.join(content for _, content in cls.model_files(snapshot, edges))
