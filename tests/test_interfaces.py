"""Tests for the CLI, the web API and the REPL command dispatcher."""
import json
from urllib.parse import quote

import httpx

import main as cli
from core import SchemaSession
from grammar.schema_repl import execute_command
from suggestion_client import SuggestionClient
from web_server import handle_api

from test_suggestion_client import PAYLOAD, _chat_reply


class TestWebApi:
    def test_analyze(self, project_dir):
        status, body = handle_api(f"/api/analyze?path={quote(str(project_dir))}")
        data = json.loads(body)
        assert status == 200
        assert data["stats"]["tables"] == 4
        assert data["orphan_tables"] == ["roles", "role_user"]

    def test_export(self, project_dir):
        status, body = handle_api(f"/api/export?path={quote(str(project_dir))}&mode=typescript")
        data = json.loads(body)
        assert status == 200
        assert data["mode"] == "typescript"
        assert "export interface RoleUser {" in data["content"]

    def test_export_defaults_to_sql(self, project_dir):
        _, body = handle_api(f"/api/export?path={quote(str(project_dir))}")
        assert json.loads(body)["content"].startswith("-- MySQL Schema")

    def test_errors(self, project_dir, tmp_path):
        assert handle_api("/api/nothing?path=x")[0] == 404
        assert handle_api("/api/analyze")[0] == 400
        assert handle_api(f"/api/analyze?path={quote(str(tmp_path / 'missing'))}")[0] == 404
        status, body = handle_api(f"/api/export?path={quote(str(project_dir))}&mode=yaml")
        assert status == 400
        assert "sql" in json.loads(body)["modes"]


class TestReplCommands:
    def test_load_show_and_edit(self, project_dir):
        session = SchemaSession()
        assert execute_command(session, f"LOAD {project_dir}") == \
            "  Loaded 3 migrations, 2 models -> 4 tables"
        assert "role_user (2 columns) [pivot]" in execute_command(session, "show tables")
        assert "users --belongsToMany--> roles" in execute_command(session, "SHOW RELATIONS")
        assert "Tables without model: roles, role_user" in execute_command(session, "SHOW ORPHANS")

        assert execute_command(session, "ADD COLUMN slug string TO posts NULLABLE") == "  [+] posts.slug (string)"
        assert "    slug?: string" in execute_command(session, "SHOW TABLE posts")
        assert execute_command(session, "RENAME COLUMN slug TO handle IN posts") == "  [~] posts.slug -> handle"
        assert execute_command(session, "DROP COLUMN handle FROM posts") == "  [-] posts.handle"
        assert execute_command(session, "SAVE") == "  [OK] 1 file(s) written"

    def test_usage_and_unknown_input(self):
        session = SchemaSession()
        assert execute_command(session, "") == ""
        assert execute_command(session, "ADD COLUMN x").startswith("  Usage:")
        assert execute_command(session, "ADD COLUMN x widget TO posts") == "  [?] Unknown column type: widget"
        assert execute_command(session, "DROP COLUMN x FROM posts") == "  [!] Could not drop x from posts"
        assert execute_command(session, "SAVE").startswith("  [!]")
        assert execute_command(session, "LOAD /definitely/not/here").startswith("  [!]")
        assert execute_command(session, "FROBNICATE").startswith("  [?] Unknown command: FROBNICATE")
        assert "LaraFlow Command Reference" in execute_command(session, "help")

    def test_export_to_file(self, project_sources, tmp_path):
        session = SchemaSession(project_sources)
        target = tmp_path / "schema.sql"
        assert execute_command(session, f"EXPORT SQL TO {target}") == f"  [OK] Written to {target}"
        assert target.read_text(encoding="utf-8").count("CREATE TABLE") == 4
        assert execute_command(session, "EXPORT yaml").startswith("  [!] Unknown export mode")

    def test_suggest_replaces_the_file_set(self):
        def handler(request):
            return httpx.Response(200, json=_chat_reply(json.dumps(PAYLOAD)))

        client = SuggestionClient(api_key="k", client=httpx.Client(transport=httpx.MockTransport(handler)))
        session = SchemaSession()
        output = execute_command(session, "SUGGEST a small blog", client)
        assert output == "  [+] Suggested schema: 2 tables, 1 relations"
        assert len(session.dirty) == 4

    def test_suggest_failure_keeps_session(self, project_sources):
        def handler(request):
            return httpx.Response(401, json={"error": {"message": "bad key"}})

        client = SuggestionClient(api_key="k", client=httpx.Client(transport=httpx.MockTransport(handler)))
        session = SchemaSession(project_sources)
        analysis = session.analysis
        assert execute_command(session, "SUGGEST anything", client) == \
            "  [!] Suggestion service returned 401: bad key"
        assert session.analysis is analysis


class TestCli:
    def test_print_export(self, project_dir, monkeypatch, capsys):
        answers = iter(["1", ""])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        assert cli.main([str(project_dir)]) == 0
        out = capsys.readouterr().out
        assert "Found 5 migration/model files" in out
        assert "CREATE TABLE `role_user`" in out

    def test_save_export(self, project_dir, tmp_path, monkeypatch):
        target = tmp_path / "types.ts"
        answers = iter(["2", str(target)])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        assert cli.main([str(project_dir)]) == 0
        assert target.read_text(encoding="utf-8").startswith("// Generated by LaraFlow")

    def test_missing_project(self, tmp_path, capsys):
        assert cli.main([str(tmp_path / "missing")]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_invalid_choice(self, project_dir, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt="": "9")
        assert cli.main([str(project_dir)]) == 1
