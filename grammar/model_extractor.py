"""
Model Extractor - read an Eloquent model's table binding and relation methods.

    class Post extends Model
    {
        protected $table = 'blog_posts';

        public function author(): BelongsTo
        {
            return $this->belongsTo(User::class, 'user_id');
        }
    }

Only zero-argument public methods whose body returns $this->hasOne/hasMany/
belongsTo/belongsToMany(...) count as relations; other relation helpers and
accessors are ignored.
"""
import re
from pathlib import PurePosixPath
from typing import List, Optional

import structlog

from Schema.schema_model import Model, ModelRelation, RelationKind
from .php_scanner import find_matching_brace, mask_comments

logger = structlog.get_logger(__name__)

_CLASS_DECL = re.compile(r"\bclass\s+(\w+)(?:\s+extends\s+[\w\\]+)?")
_TABLE_OVERRIDE = re.compile(r"protected\s+\$table\s*=\s*['\"](\w+)['\"]\s*;")
_METHOD_HEAD = re.compile(r"public\s+function\s+(\w+)\s*\(\s*\)\s*(?::\s*\??[\w\\]+\s*)?\{")
_RELATION_CALL = re.compile(
    r"return\s+\$this\s*->\s*(\w+)\s*\(\s*(?:['\"]\\?([\w\\]+)['\"]|\\?([\w\\]+)::class)"
)


def class_name_from_path(path: str) -> str:
    """app/Models/Post.php -> Post"""
    return PurePosixPath(path.replace("\\", "/")).stem


def extract_relations(text: str) -> List[ModelRelation]:
    masked = mask_comments(text)
    relations = []

    for head in _METHOD_HEAD.finditer(masked):
        close_index = find_matching_brace(masked, head.end() - 1)
        if close_index is None:
            continue
        call = _RELATION_CALL.search(masked, head.end(), close_index)
        if not call:
            continue
        kind = RelationKind.from_keyword(call.group(1))
        if kind is None:
            logger.debug("relation_kind_ignored", method=head.group(1), keyword=call.group(1))
            continue
        target = (call.group(2) or call.group(3)).split("\\")[-1]
        relations.append(ModelRelation(method_name=head.group(1), kind=kind, target_class=target))

    return relations


def extract_model(text: str, path: str = "") -> Optional[Model]:
    """Build a Model record from one model file, or None when no class name can be found."""
    masked = mask_comments(text)
    class_match = _CLASS_DECL.search(masked)
    class_name = class_match.group(1) if class_match else class_name_from_path(path)
    if not class_name:
        logger.debug("model_class_missing", path=path)
        return None

    table_match = _TABLE_OVERRIDE.search(masked)
    return Model(
        class_name=class_name,
        table_name=table_match.group(1) if table_match else "",
        relations=extract_relations(text),
        file_path=path,
        explicit_table=bool(table_match),
    )
