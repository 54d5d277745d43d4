"""
LaraFlow Web Server - Web interface for Laravel schema inspection.
Run this file and open http://localhost:5577 in your browser.
"""
import sys
import json
from pathlib import Path
from http.server import HTTPServer, SimpleHTTPRequestHandler
from urllib.parse import parse_qs, urlsplit
from typing import Any, Dict, Tuple
import threading
import webbrowser

import structlog

sys.path.insert(0, str(Path(__file__).parent))

from config import WEB_PORT, configure_logging
from core import EXPORT_MODES, export_schema, run_analysis
from parser_factory import load_project_files

logger = structlog.get_logger(__name__)

PORT = WEB_PORT


def _json_response(status: int, payload: Dict[str, Any]) -> Tuple[int, str]:
    return status, json.dumps(payload)


def handle_api(request_path: str) -> Tuple[int, str]:
    """
    Answer one /api/... GET request.

    Args:
        request_path: path including query string, e.g. "/api/analyze?path=/srv/app"

    Returns:
        (HTTP status, JSON body)
    """
    parts = urlsplit(request_path)
    params = parse_qs(parts.query)
    project = params.get('path', [''])[0]

    if parts.path not in ('/api/analyze', '/api/export'):
        return _json_response(404, {"error": f"Unknown endpoint: {parts.path}"})
    if not project:
        return _json_response(400, {"error": "Missing 'path' parameter"})

    try:
        sources = load_project_files(project)
    except FileNotFoundError as e:
        return _json_response(404, {"error": str(e)})

    analysis = run_analysis(sources)

    if parts.path == '/api/analyze':
        return _json_response(200, analysis.to_dict())

    mode = params.get('mode', ['sql'])[0]
    try:
        content = export_schema(analysis, mode)
    except ValueError as e:
        return _json_response(400, {"error": str(e), "modes": list(EXPORT_MODES)})
    return _json_response(200, {"mode": mode, "content": content})


class LaraFlowHandler(SimpleHTTPRequestHandler):
    """HTTP request handler for the LaraFlow web interface."""

    def do_GET(self):
        if self.path == '/' or self.path == '/index.html':
            self.send_response(200)
            self.send_header('Content-type', 'text/html')
            self.send_header('Cache-Control', 'no-cache, no-store, must-revalidate')
            self.end_headers()
            self.wfile.write(get_html().encode())
        elif self.path.startswith('/api/'):
            status, body = handle_api(self.path)
            self.send_response(status)
            self.send_header('Content-type', 'application/json')
            self.send_header('Access-Control-Allow-Origin', '*')
            self.send_header('Cache-Control', 'no-cache')
            self.end_headers()
            self.wfile.write(body.encode())
        else:
            super().do_GET()

    def log_message(self, format, *args):
        logger.debug("http_request", message=format % args)


def get_html():
    """Return the single-page viewer."""
    options = "".join(f'<option value="{m}">{m}</option>' for m in EXPORT_MODES)
    return '''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>LaraFlow - Laravel Schema Viewer</title>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #1D1D1F; padding: 32px 48px; }
        h1 { font-size: 28px; font-weight: 600; margin-bottom: 24px; }
        .controls { display: flex; gap: 12px; margin-bottom: 24px; }
        input, select, button { font-size: 14px; padding: 8px 12px; border: 1px solid #D2D2D7; border-radius: 8px; }
        input { flex: 1; }
        button { background: #0071E3; color: #FFFFFF; border: none; cursor: pointer; }
        .grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(260px, 1fr)); gap: 16px; }
        .card { border: 1px solid #E8E8ED; border-radius: 12px; padding: 16px; }
        .card h3 { font-size: 15px; margin-bottom: 8px; }
        .col { font-family: 'SF Mono', Menlo, monospace; font-size: 12px; line-height: 1.7; }
        .pk { color: #BF5AF2; } .fk { color: #0071E3; }
        pre { background: #F5F5F7; border-radius: 12px; padding: 16px; font-size: 12px; overflow: auto; margin-top: 24px; }
        .error { color: #FF3B30; }
    </style>
</head>
<body>
    <h1>LaraFlow</h1>
    <div class="controls">
        <input id="path" placeholder="/path/to/laravel/project">
        <button onclick="analyze()">Analyze</button>
        <select id="mode">''' + options + '''</select>
        <button onclick="exportSchema()">Export</button>
    </div>
    <div id="summary"></div>
    <div class="grid" id="tables"></div>
    <pre id="output" hidden></pre>
    <script>
        const q = () => encodeURIComponent(document.getElementById('path').value);

        async function analyze() {
            const res = await fetch('/api/analyze?path=' + q());
            const data = await res.json();
            const summary = document.getElementById('summary');
            const grid = document.getElementById('tables');
            grid.innerHTML = '';
            if (data.error) { summary.innerHTML = '<p class="error">' + data.error + '</p>'; return; }
            const s = data.stats;
            summary.innerHTML = '<p>' + s.tables + ' tables, ' + s.relations + ' relations</p><br>';
            for (const table of Object.values(data.schema.tables)) {
                const cols = table.columns.map(c =>
                    '<div class="col ' + (c.is_primary_key ? 'pk' : c.is_foreign_key ? 'fk' : '') + '">' +
                    c.name + (c.nullable ? '?' : '') + ': ' + c.type + '</div>').join('');
                const rels = data.edges.filter(e => e.source === table.name).map(e =>
                    '<div class="col fk">' + e.kind + ' &rarr; ' + e.target + '</div>').join('');
                grid.innerHTML += '<div class="card"><h3>' + table.name + (table.is_pivot ? ' (pivot)' : '') +
                    '</h3>' + cols + rels + '</div>';
            }
        }

        async function exportSchema() {
            const mode = document.getElementById('mode').value;
            const res = await fetch('/api/export?path=' + q() + '&mode=' + mode);
            const data = await res.json();
            const out = document.getElementById('output');
            out.hidden = false;
            out.textContent = data.error ? data.error : data.content;
        }
    </script>
</body>
</html>'''


def main():
    configure_logging()
    server = HTTPServer(('localhost', PORT), LaraFlowHandler)
    print(f"\n  LaraFlow Web Server running at http://localhost:{PORT}")
    print(f"  Press Ctrl+C to stop\n")

    threading.Timer(1.0, lambda: webbrowser.open(f'http://localhost:{PORT}')).start()

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\n  Server stopped.")
        server.shutdown()


if __name__ == "__main__":
    main()
