import socket
import threading
import unittest

from werkzeug.serving import make_server

from mock_server.todo_api import create_app


class LiveServerTestCase(unittest.TestCase):
    """Runs a fresh todo API on an ephemeral port for each test class."""

    @classmethod
    def setUpClass(cls) -> None:
        super().setUpClass()
        cls.server = make_server("127.0.0.1", 0, create_app(), threaded=True)
        cls.base_url = f"http://127.0.0.1:{cls.server.server_port}"
        cls.server_thread = threading.Thread(target=cls.server.serve_forever, daemon=True)
        cls.server_thread.start()

    @classmethod
    def tearDownClass(cls) -> None:
        cls.server.shutdown()
        cls.server.server_close()
        cls.server_thread.join(timeout=5)
        super().tearDownClass()


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
