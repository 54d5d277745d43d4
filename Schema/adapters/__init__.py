from .mysql_adapter import MySQLAdapter
from .eloquent_adapter import EloquentAdapter
from .typescript_adapter import TypeScriptAdapter
from .shell_adapter import ShellAdapter

__all__ = ['MySQLAdapter', 'EloquentAdapter', 'TypeScriptAdapter', 'ShellAdapter']
