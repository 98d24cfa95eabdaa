from __future__ import annotations

import argparse
import http.server
import mimetypes
import pathlib
import threading
import typing
import webbrowser

from .core import ServerError
from .pretty_utils import print_error, print_with_style

if typing.TYPE_CHECKING:
    from socketserver import _AfInetAddress


INDEX_FILE = 'index.html'
# Default used by nginx
DEFAULT_MIME_TYPE = 'application/octet-stream'
NO_CACHE_HEADERS = {
    'Cache-Control': 'no-store, no-cache, must-revalidate, proxy-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}
# 0 = silent, 1 = errors, 2 = requests, 3 = debug
LOG_ERRORS = 1
LOG_INFO = 2


class ThreadedHTTPServer(http.server.ThreadingHTTPServer):
    """
    A simple HTTP server that handles each request in a separate thread.
    """
    RequestHandlerClass: typing.Type[http.server.SimpleHTTPRequestHandler]
    daemon_threads = True

    def __init__(self,
                 server_address: _AfInetAddress,
                 directory: str | pathlib.Path = '.',
                 default_file: str = INDEX_FILE,
                 log_level: int = LOG_INFO,
                 RequestHandlerClass: typing.Type[http.server.SimpleHTTPRequestHandler] | None = None,
                 bind_and_activate: bool = True) -> None:
        super().__init__(server_address, RequestHandlerClass or Handler, bind_and_activate)
        self.directory = str(pathlib.Path(directory).resolve())
        self.default_file = default_file
        self.log_level = log_level

    def finish_request(self, request, client_address) -> None:
        self.RequestHandlerClass(request, client_address, self, directory=self.directory)


class Handler(http.server.SimpleHTTPRequestHandler):
    """
    Static file handler which disables caching on every response and falls
    back to the default document for directories and missing paths.
    """
    server: ThreadedHTTPServer

    def end_headers(self):
        for key, value in NO_CACHE_HEADERS.items():
            self.send_header(key, value)
        super().end_headers()

    def resolve_file(self) -> pathlib.Path | None:
        root = pathlib.Path(self.directory)
        file_path = pathlib.Path(self.translate_path(self.path))
        if file_path.is_dir():
            file_path /= self.server.default_file
        if not file_path.is_file():
            file_path = root / self.server.default_file

        # Double-check that we haven't escaped the directory.
        # self.translate_path() should discard any suspicious path
        # components, but it's better to be safe.
        if not file_path.resolve().is_relative_to(root):
            return None
        return file_path

    def send_file(self, include_body: bool = True):
        file_path = self.resolve_file()
        if file_path is None:
            return self.send_error(403, 'Forbidden')
        try:
            data = file_path.read_bytes()
        except FileNotFoundError:
            return self.send_error(404, f'File Not Found: {self.path}')

        mime_type, _enc = mimetypes.guess_type(file_path)
        self.send_response(200)
        self.send_header('Content-type', mime_type or DEFAULT_MIME_TYPE)
        self.send_header('Content-Length', str(len(data)))
        self.end_headers()
        if include_body:
            self.wfile.write(data)

    def do_GET(self):
        self.send_file()

    def do_HEAD(self):
        self.send_file(include_body=False)

    def log_request(self, code='-', size='-'):
        if self.server.log_level >= LOG_INFO:
            super().log_request(code, size)

    def log_error(self, format, *args):
        if self.server.log_level >= LOG_ERRORS:
            super().log_error(format, *args)


def start_server(port: int,
                 directory: str | pathlib.Path,
                 host: str = 'localhost',
                 default_file: str = INDEX_FILE,
                 log_level: int = LOG_INFO,
                 open_browser: bool = False,
                 wait: float = 0.0):
    """
    Start serving @directory in a background thread and return the server.
    If @open_browser is set, a browser is pointed at the server after @wait
    seconds. Raises `ServerError` if the address cannot be bound.
    """
    try:
        httpd = ThreadedHTTPServer((host, port), directory, default_file, log_level)
    except OSError as e:
        raise ServerError(f'Could not serve on {host}:{port}: {e}') from e

    thread = threading.Thread(target=httpd.serve_forever, name='sprat-preview', daemon=True)
    thread.start()
    url = f'http://{host}:{httpd.server_address[1]}/'
    if log_level >= LOG_INFO:
        print_with_style(f'Serving {directory} at {url}')
    if open_browser:
        timer = threading.Timer(wait, webbrowser.open, args=(url,))
        timer.daemon = True
        timer.start()
    return httpd


def serve(port: int, directory: str | pathlib.Path, host: str = 'localhost', **kw):
    """
    Serve @directory until interrupted.
    """
    httpd = start_server(port, directory, host, **kw)
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.shutdown()
        httpd.server_close()


def main(arguments: list[str] | None = None):
    parser = argparse.ArgumentParser()
    parser.add_argument('-p', '--port',
                        help='port to serve from',
                        type=int,
                        default=8080)
    parser.add_argument('-d', '--directory',
                        help='directory to serve',
                        type=pathlib.Path,
                        default='.')
    parser.add_argument('--default-file',
                        help='document served for directories and missing paths',
                        default=INDEX_FILE)
    args = parser.parse_args(arguments)
    try:
        serve(args.port, args.directory, default_file=args.default_file)
    except ServerError as e:
        print_error(str(e))
        raise SystemExit(1) from e


if __name__ == '__main__':
    main()
