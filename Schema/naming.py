"""
Naming conventions shared by the builder, the resolver and the generators.

The rules are plain suffix rules, not a dictionary lookup.
pluralize() and singularize() are not inverses for every input
("status" -> "statu"); generated artifacts depend on these exact rules.
"""
import re

_SIBILANT_END = re.compile(r"(s|sh|ch|x|z)$")
_SIBILANT_ES_END = re.compile(r"(s|sh|ch|x|z)es$")
_CONSONANT_Y_END = re.compile(r"[^aeiou]y$")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def pluralize(word: str) -> str:
    if word.endswith("s"):
        return word
    if _CONSONANT_Y_END.search(word):
        return word[:-1] + "ies"
    if _SIBILANT_END.search(word):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    if word.endswith("ies"):
        return word[:-3] + "y"
    if _SIBILANT_ES_END.search(word):
        return word[:-2]
    if word.endswith("s"):
        return word[:-1]
    return word


def snake_case(name: str) -> str:
    """BlogPost -> blog_post, HTTPLog -> http_log."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def pascal_case(name: str) -> str:
    """blog_posts -> BlogPosts."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def model_to_table(class_name: str) -> str:
    """Default table for a model class without an explicit override."""
    return pluralize(snake_case(class_name))


def table_to_model(table_name: str) -> str:
    """Class name a table is exported under: posts -> Post, role_user -> RoleUser."""
    return pascal_case(singularize(table_name))
