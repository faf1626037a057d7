import unittest
from unittest.mock import Mock

from fastapi.testclient import TestClient

from tickertape.main import app


class AppLifecycleTest(unittest.TestCase):
    def test_lifespan_starts_and_stops_ticker_tape_service(self):
        service = app.state.ticker_tape_service
        original_start = service.start
        original_stop = service.stop

        start_mock = Mock()
        stop_mock = Mock()
        service.start = start_mock
        service.stop = stop_mock

        try:
            with TestClient(app):
                start_mock.assert_called_once_with()
                stop_mock.assert_not_called()

            stop_mock.assert_called_once_with()
        finally:
            service.start = original_start
            service.stop = original_stop


if __name__ == "__main__":
    unittest.main()
