import json
from typing import Callable, Union

import httpx
import pytest

from intake.core.config import Settings
from intake.core.flags import FeatureFlags
from intake.forms.state import FormState


@pytest.fixture
def anyio_backend():
    # asyncio only, no trio needed
    return "asyncio"


class FakeAPI:
    """
    Routes httpx requests to canned responses by (method, url substring).
    Every request is recorded so tests can assert on what went over the wire.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: list[tuple[str, str, Union[httpx.Response, Callable]]] = []

    def on(self, method: str, url_part: str, response):
        self._routes.append((method.upper(), url_part, response))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for method, part, response in self._routes:
            if request.method == method and part in url:
                return response(request) if callable(response) else response
        return httpx.Response(404, json={"error": f"no route for {request.method} {url}"})

    def calls(self, method: str, url_part: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and url_part in str(r.url)]

    def client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self), **kwargs)


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def fake_api():
    return FakeAPI()


@pytest.fixture
def settings():
    return Settings(
        AIRTABLE_API_KEY="pat-test",
        AIRTABLE_BASE_ID="appBase",
        AIRTABLE_TABLE_NAME="Intake",
        CLOUDINARY_CLOUD_NAME="demo",
        CLOUDINARY_API_KEY="123",
        CLOUDINARY_API_SECRET="shh",
    )


@pytest.fixture
def flags():
    return FeatureFlags(STORAGE_PROVIDER="cloudinary", FF_USE_SECONDARY_ATTACH=True)


@pytest.fixture
def filled_state():
    """A state that passes every submit-time check."""
    state = FormState(
        companyName="Acme",
        contactName="Jane Doe",
        email="jane@acme.com",
        instagram="acmejane",
        salesPitch="pitch text",
        offerInfo="offer text",
        brandFAQ="brand faq",
        productFAQ="product faq",
        salesGuide="guide",
        leadQualification="qualified",
        crm="hubspot",
    )
    state.stage("brandVoiceFile", 1)
    return state
