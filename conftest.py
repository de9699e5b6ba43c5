import pytest

from websession import factory


@pytest.fixture()
def app():
    return factory.create_web_app()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def request_context(app):
    yield app.test_request_context()
