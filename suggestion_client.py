"""
Suggestion Client - Ask an OpenAI-compatible chat endpoint for a schema.

The service answers a natural-language prompt with
    {"tables": [{"name", "columns": [{"name", "type", "nullable"}]}],
     "relations": [{"fromModel", "type", "toModel", "methodName"}]}
possibly wrapped in prose or a fenced code block. Any failure at this boundary
raises SuggestionError; nothing is applied to a session until a response has
been parsed completely.
"""
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import structlog

from Schema.schema_model import (
    Column, ColumnType, DeclaredRelation, ForeignKey, RelationKind, SchemaSnapshot,
    SourceFile, SourceKind, Table
)
from Schema.naming import pluralize, singularize, table_to_model
from Schema.adapters import EloquentAdapter
from Schema.adapters.migration_adapter import MIGRATION_DIR, generate_migration_file, migration_file_names
from config import (
    IDENTIFIER_SUFFIX, SUGGESTION_API_KEY, SUGGESTION_API_URL,
    SUGGESTION_MODEL, SUGGESTION_TEMPERATURE, SUGGESTION_TIMEOUT
)

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """
You are a Laravel Database Architect.
Your goal is to generate a database schema based on the user's description.
You MUST return ONLY a valid JSON object. Do not include any markdown formatting, explanations, or code blocks.
The JSON must follow this exact structure:

{
  "tables": [
    {
      "name": "table_name_plural",
      "columns": [
        { "name": "column_name", "type": "laravel_column_type", "nullable": boolean }
      ]
    }
  ],
  "relations": [
    {
      "fromModel": "ModelName",
      "type": "hasMany|belongsTo|hasOne|belongsToMany",
      "toModel": "RelatedModelName",
      "methodName": "relationMethodName"
    }
  ]
}

Rules:
1. Always include 'id' (bigIncrements/id) for every table.
2. Use standard Laravel column types (string, text, integer, boolean, foreignId, timestamp, date, etc.).
3. Infer relationships based on the description.
4. "fromModel" and "toModel" should be PascalCase (e.g., "User", "Post").
5. "name" in tables should be snake_case plural (e.g., "users", "blog_posts").
"""

_FENCED_JSON = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_FENCED_ANY = re.compile(r"```\s*(.*?)```", re.DOTALL)


class SuggestionError(Exception):
    """The suggestion service could not produce a usable schema."""


# ============================================================================
# PAYLOAD EXTRACTION
# ============================================================================

def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def extract_json_payload(text: str) -> Optional[Dict[str, Any]]:
    """
    Pull the first JSON object out of a model reply.

    Tries, in order: a ```json fenced block, any fenced block, the whole
    reply, then the first balanced {...} object embedded in prose.
    Returns None when no valid object is found.
    """
    if not text:
        return None

    for pattern in (_FENCED_JSON, _FENCED_ANY):
        m = pattern.search(text)
        if m:
            found = _load_object(m.group(1).strip())
            if found is not None:
                return found

    found = _load_object(text.strip())
    if found is not None:
        return found

    decoder = json.JSONDecoder()
    for m in re.finditer(r"\{", text):
        try:
            value, _ = decoder.raw_decode(text, m.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None


# ============================================================================
# SUGGESTED SCHEMA
# ============================================================================

@dataclass
class SchemaSuggestion:
    tables: List[Table] = field(default_factory=list)
    relations: List[DeclaredRelation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "relations": [r.to_dict() for r in self.relations],
        }


def _parse_column(data: Dict[str, Any]) -> Optional[Column]:
    name = data.get("name")
    if not isinstance(name, str) or not name:
        return None
    column_type = ColumnType.from_token(str(data.get("type", "")))
    if column_type is None:
        logger.debug("suggested_type_unknown", column=name, type=data.get("type"))
        column_type = ColumnType.STRING
    return Column(
        name=name,
        type=column_type,
        is_primary_key=column_type.is_auto_increment or bool(data.get("isPk")),
        is_foreign_key=column_type is ColumnType.FOREIGN_ID,
        nullable=bool(data.get("nullable", False)),
    )


def _parse_table(data: Dict[str, Any]) -> Optional[Table]:
    name = data.get("name")
    if not isinstance(name, str) or not name:
        return None
    columns = []
    for item in data.get("columns") or []:
        column = _parse_column(item) if isinstance(item, dict) else None
        if column and not any(c.name == column.name for c in columns):
            columns.append(column)

    foreign_keys = []
    for column in columns:
        if column.is_foreign_key and column.name.endswith(IDENTIFIER_SUFFIX):
            foreign_keys.append(ForeignKey(column.name, pluralize(column.name[:-len(IDENTIFIER_SUFFIX)])))
    return Table(name=name, columns=columns, foreign_keys=foreign_keys)


def _parse_relation(data: Dict[str, Any]) -> Optional[DeclaredRelation]:
    kind = RelationKind.from_keyword(str(data.get("type", "")))
    from_model, to_model = data.get("fromModel"), data.get("toModel")
    if kind is None or not from_model or not to_model:
        return None
    return DeclaredRelation(str(from_model), kind, str(to_model), str(data.get("methodName") or ""))


def parse_suggestion(payload: Dict[str, Any]) -> SchemaSuggestion:
    """Tolerant conversion of a decoded payload; malformed entries are dropped."""
    tables = payload.get("tables")
    relations = payload.get("relations")
    if not isinstance(tables, list):
        raise SuggestionError("Suggestion payload has no 'tables' list")

    suggestion = SchemaSuggestion()
    for item in tables:
        table = _parse_table(item) if isinstance(item, dict) else None
        if table:
            suggestion.tables.append(table)
    for item in relations if isinstance(relations, list) else []:
        relation = _parse_relation(item) if isinstance(item, dict) else None
        if relation:
            suggestion.relations.append(relation)
    return suggestion


def suggestion_to_files(suggestion: SchemaSuggestion, start: Optional[datetime] = None) -> List[SourceFile]:
    """
    One migration per table (timestamps one second apart, in suggestion order)
    and one Eloquent model per table carrying the relations declared from it.
    """
    files = []
    names = migration_file_names([t.name for t in suggestion.tables], start)
    for file_name, table in zip(names, suggestion.tables):
        files.append(SourceFile(
            path=f"{MIGRATION_DIR}/{file_name}",
            name=file_name,
            content=generate_migration_file(table),
            kind=SourceKind.MIGRATION,
        ))

    for table in suggestion.tables:
        class_name = table_to_model(table.name)
        relations = []
        for rel in suggestion.relations:
            if rel.from_model != class_name:
                continue
            method_name = rel.method_name or (
                singularize(rel.to_model[:1].lower() + rel.to_model[1:]) if rel.kind.is_singular
                else pluralize(rel.to_model[:1].lower() + rel.to_model[1:])
            )
            relations.append(DeclaredRelation(rel.from_model, rel.kind, rel.to_model, method_name))
        file_name = f"{class_name}.php"
        files.append(SourceFile(
            path=f"{EloquentAdapter.MODEL_DIR}/{file_name}",
            name=file_name,
            content=EloquentAdapter.export_model(class_name, table.name, relations),
            kind=SourceKind.MODEL,
        ))
    return files


# ============================================================================
# CLIENT
# ============================================================================

def _schema_summary(snapshot: SchemaSnapshot) -> str:
    summary = {
        name: [f"{c.name}:{c.type.value}" for c in table.columns]
        for name, table in snapshot.tables.items()
    }
    return json.dumps(summary)


class SuggestionClient:
    """Client for the schema-suggestion chat endpoint."""

    def __init__(self, api_key: str = SUGGESTION_API_KEY, model: str = SUGGESTION_MODEL,
                 url: str = SUGGESTION_API_URL, timeout: float = SUGGESTION_TIMEOUT,
                 client: Optional[httpx.Client] = None):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self._client = client

    def _request_body(self, prompt: str, current: Optional[SchemaSnapshot]) -> Dict[str, Any]:
        user_content = prompt
        if current is not None and current.tables:
            user_content = f"{prompt}\n\nCurrent schema (table: columns):\n{_schema_summary(current)}"
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_content},
            ],
            "temperature": SUGGESTION_TEMPERATURE,
            "response_format": {"type": "json_object"},
        }

    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            return self._client.post(self.url, json=body, headers=headers, timeout=self.timeout)
        return httpx.post(self.url, json=body, headers=headers, timeout=self.timeout)

    def suggest(self, prompt: str, current: Optional[SchemaSnapshot] = None) -> SchemaSuggestion:
        """
        Request a schema for a prompt.

        Args:
            prompt: natural-language description
            current: optional snapshot summarized into the request

        Returns:
            SchemaSuggestion

        Raises:
            SuggestionError: missing key, transport error, non-2xx status or no usable JSON
        """
        if not self.api_key:
            raise SuggestionError("No API key configured (set GROQ_API_KEY)")

        try:
            response = self._post(self._request_body(prompt, current))
        except httpx.HTTPError as e:
            raise SuggestionError(f"Suggestion request failed: {e}") from e

        if response.status_code >= 400:
            raise SuggestionError(f"Suggestion service returned {response.status_code}: {_error_message(response)}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise SuggestionError("Unexpected response shape from suggestion service") from e

        payload = extract_json_payload(content or "")
        if payload is None:
            raise SuggestionError("No JSON object found in suggestion response")

        suggestion = parse_suggestion(payload)
        logger.info("suggestion_received", tables=len(suggestion.tables), relations=len(suggestion.relations))
        return suggestion


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.text[:200] or "Failed to generate schema"
