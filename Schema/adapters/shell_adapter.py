"""
Shell Adapter - Bundle a set of generated files into one bash setup script.

Every file is written through a quoted heredoc (<<'EOF'), so the shell performs
no expansion inside the body and the file lands byte for byte as given.
"""
import shlex
from typing import Iterable, Tuple

HEREDOC_DELIMITER = "EOF"


def _delimiter_for(content: str) -> str:
    """EOF, or EOF_1, EOF_2 ... when a line of the content would close the heredoc early."""
    lines = set(content.split("\n"))
    delimiter = HEREDOC_DELIMITER
    suffix = 0
    while delimiter in lines:
        suffix += 1
        delimiter = f"{HEREDOC_DELIMITER}_{suffix}"
    return delimiter


def _write_instruction(target: str, content: str) -> str:
    if not content:
        return f": > {target}\n"

    delimiter = _delimiter_for(content)
    if content.endswith("\n"):
        return f"cat <<'{delimiter}' > {target}\n{content}{delimiter}\n"

    # A heredoc always ends in a newline; command substitution strips it again
    return f"printf '%s' \"$(cat <<'{delimiter}'\n{content}\n{delimiter}\n)\" > {target}\n"


class ShellAdapter:
    """Adapter to render a file set as an idempotent bootstrap script."""

    @classmethod
    def export_script(cls, files: Iterable[Tuple[str, str]], title: str = "LaraFlow") -> str:
        """
        Export (path, content) pairs as a bash script run from the project root.

        Leading slashes are stripped so every path stays relative to the
        directory the script runs in.
        """
        parts = [
            "#!/bin/bash\n",
            "\n",
            f"# {title} Setup Script\n",
            "# Run this in your Laravel project root\n",
            "\n",
        ]

        for path, content in files:
            relative = path.lstrip("/")
            target = shlex.quote(relative)
            parts.append(f"echo {shlex.quote(f'Creating {relative}...')}\n")
            parts.append(f"mkdir -p \"$(dirname {target})\"\n")
            parts.append(_write_instruction(target, content))
            parts.append("\n")

        parts.append("echo \"Done! Don't forget to run 'php artisan migrate'\"\n")
        return "".join(parts)
