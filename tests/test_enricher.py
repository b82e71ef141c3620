"""
End-to-end tests for the enrichment pipeline and its entry points.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from enricher.app import app, lambda_handler, on_track
from enricher.service import EnrichmentPipeline
from shared.utils.errors import AuthError, CatalogError, ProfileLookupError
from shared.utils.helpers import basic_auth_header

from conftest import TOKEN_URL, MockResponse, MockSession
from test_services import catalog_document

SEGMENT_URL = "api.segment.io"


@pytest.fixture
def session(token_response):
    return MockSession(
        [
            ("POST", TOKEN_URL, token_response),
            ("POST", SEGMENT_URL, MockResponse(200, {"success": True})),
        ]
    )


@pytest.fixture
def pipeline(session, token_cache):
    return EnrichmentPipeline(session=session, cache=token_cache)


def forwarded(session):
    calls = session.calls_to(SEGMENT_URL)
    assert len(calls) == 1
    return calls[0]["json"]


class TestScenarios:
    @pytest.mark.asyncio
    async def test_flat_price_is_converted_to_dkk(self, pipeline, session, settings):
        session.add("GET", "exchangerates", MockResponse(200, {"rates": {"DKK": 6.5}}))
        event = {
            "type": "track",
            "event": "Product Viewed",
            "messageId": "m-1",
            "properties": {"price": 100, "currency": "USD"},
            "context": {},
        }

        result = await pipeline.run(event, settings)

        body = forwarded(session)
        assert body == result
        assert body["properties"] == {"price": 650, "currency": "DKK"}
        assert "messageId" not in body
        assert session.calls_to("/traits") == []

    @pytest.mark.asyncio
    async def test_products_get_cost_and_margin(self, pipeline, session, settings):
        session.add("GET", "Products/A", MockResponse(200, catalog_document(cost="20")))
        event = {
            "properties": {
                "products": [
                    {"product_id": "A", "price": 50, "quantity": 2, "currency": "DKK"}
                ]
            },
            "context": {},
        }

        await pipeline.run(event, settings)

        body = forwarded(session)
        assert body["properties"]["products"] == [
            {
                "product_id": "A",
                "price": 50,
                "quantity": 2,
                "currency": "DKK",
                "cost": 20,
                "margin": 60.0,
            }
        ]
        assert "margin" not in body["properties"]
        assert session.calls_to("exchangerates") == []
        catalog_request = session.calls_to("Products/A")[0]
        assert catalog_request["headers"] == {"Authorization": "Bearer ya29.token"}

    @pytest.mark.asyncio
    async def test_unknown_user_is_still_forwarded(self, pipeline, session, settings):
        session.add("GET", "/traits", MockResponse(404))
        event = {"userId": "new-lead", "properties": {}, "context": {"ip": "1.2.3.4"}}

        await pipeline.run(event, settings)

        body = forwarded(session)
        assert body["context"] == {"ip": "1.2.3.4"}
        assert body["userId"] == "new-lead"

    @pytest.mark.asyncio
    async def test_catalog_failure_stops_forwarding(self, pipeline, session, settings):
        session.add("GET", "Products/A", MockResponse(500))
        event = {"properties": {"products": [{"product_id": "A", "price": 1}]}}

        with pytest.raises(CatalogError) as excinfo:
            await pipeline.run(event, settings)

        assert excinfo.value.product_id == "A"
        assert session.calls_to(SEGMENT_URL) == []


class TestPipeline:
    @pytest.mark.asyncio
    async def test_traits_are_added_to_context(self, pipeline, session, settings):
        traits = {"email": "jane@example.com"}
        session.add("GET", "/traits", MockResponse(200, {"traits": traits}))

        await pipeline.run({"userId": "u1", "properties": {}}, settings)

        assert forwarded(session)["context"] == {"traits": traits}
        request = session.calls_to("/traits")[0]
        assert "/spaces/spa_123/" in request["url"]
        assert request["headers"] == basic_auth_header("personas-token")

    @pytest.mark.asyncio
    async def test_null_user_id_skips_lookup(self, pipeline, session, settings):
        await pipeline.run({"userId": None, "properties": {}}, settings)

        assert session.calls_to("/traits") == []
        body = forwarded(session)
        assert "traits" not in body["context"]
        assert body["userId"] is None

    @pytest.mark.asyncio
    async def test_profile_failure_stops_forwarding(self, pipeline, session, settings):
        session.add("GET", "/traits", MockResponse(403))

        with pytest.raises(ProfileLookupError):
            await pipeline.run({"userId": "u1", "properties": {}}, settings)

        assert session.calls_to(SEGMENT_URL) == []

    @pytest.mark.asyncio
    async def test_auth_failure_stops_everything(self, token_cache, settings):
        session = MockSession([("POST", TOKEN_URL, MockResponse(400))])
        pipeline = EnrichmentPipeline(session=session, cache=token_cache)

        with pytest.raises(AuthError):
            await pipeline.run({"properties": {}}, settings)

        assert len(session.requests) == 1

    @pytest.mark.asyncio
    async def test_order_total_margin(self, pipeline, session, settings):
        session.add("GET", "exchangerates", MockResponse(200, {"rates": {"DKK": 2}}))
        session.add("GET", "Products/A", MockResponse(200, catalog_document(cost="10")))
        session.add("GET", "Products/B", MockResponse(200, catalog_document(cost="5")))
        event = {
            "properties": {
                "revenue": 60,
                "products": [
                    {"product_id": "A", "price": 20, "quantity": 1, "currency": "EUR"},
                    {"product_id": "B", "price": 5, "quantity": 2, "currency": "EUR"},
                ],
            }
        }

        await pipeline.run(event, settings)

        properties = forwarded(session)["properties"]
        assert properties["revenue"] == 120
        assert [p["margin"] for p in properties["products"]] == [30, 10]
        assert properties["margin"] == 40

    @pytest.mark.asyncio
    async def test_no_order_margin_when_an_item_has_none(
        self, pipeline, session, settings
    ):
        session.add("GET", "Products/A", MockResponse(200, catalog_document(cost="10")))
        session.add("GET", "Products/B", MockResponse(404))
        event = {
            "properties": {
                "revenue": 30,
                "products": [
                    {"product_id": "A", "price": 20},
                    {"product_id": "B", "price": 10},
                ],
            }
        }

        await pipeline.run(event, settings)

        properties = forwarded(session)["properties"]
        assert "margin" not in properties
        assert properties["products"][1] == {"product_id": "B", "price": 10}

    @pytest.mark.asyncio
    async def test_single_product_event(self, pipeline, session, settings):
        session.add(
            "GET",
            "Products/A",
            MockResponse(200, catalog_document(cost="12", category="Shoes")),
        )
        event = {
            "properties": {"product_id": "A", "price": 19.99, "quantity": 3},
        }

        await pipeline.run(event, settings)

        assert forwarded(session)["properties"] == {
            "product_id": "A",
            "price": 19.99,
            "quantity": 3,
            "cost": 12,
            "category": "Shoes",
            "margin": 23.97,
        }

    @pytest.mark.asyncio
    async def test_token_is_reused_across_runs(self, session, token_cache, settings):
        for _ in range(3):
            pipeline = EnrichmentPipeline(session=session, cache=token_cache)
            await pipeline.run({"properties": {}}, settings)
            await pipeline.close()

        assert len(session.calls_to(TOKEN_URL)) == 1
        assert not session.closed

    @pytest.mark.asyncio
    async def test_accepts_host_settings_mapping(self, pipeline, session, settings):
        host_settings = {
            "clientEmail": settings.client_email,
            "privateKey": settings.private_key,
            "privateKeyId": settings.private_key_id,
            "segmentPersonasSpaceId": "spa_123",
            "segmentPersonasAccessToken": "personas-token",
            "httpApiKey": "host-write-key",
        }

        await pipeline.run({"properties": {}}, host_settings)

        assert session.calls_to(SEGMENT_URL)[0]["headers"] == basic_auth_header(
            "host-write-key"
        )


class TestEntryPoints:
    @pytest.mark.asyncio
    async def test_on_track_closes_pipeline(self, settings):
        pipeline = Mock()
        pipeline.run = AsyncMock(return_value={"properties": {}})
        pipeline.close = AsyncMock()

        with patch("enricher.app.EnrichmentPipeline", return_value=pipeline):
            result = await on_track({"properties": {}}, settings)

        assert result == {"properties": {}}
        pipeline.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_app_success_response(self, settings):
        context = Mock()
        context.aws_request_id = "test-request-id"
        context.log_stream_name = "test-log-stream"

        with patch(
            "enricher.app.on_track", AsyncMock(return_value={"event": "x"})
        ) as mock_on_track:
            response = await app({"event": "x"}, context, settings=settings)

        mock_on_track.assert_awaited_once_with({"event": "x"}, settings)
        assert response["statusCode"] == 200
        assert response["body"]["status"] == "success"
        assert response["body"]["event"] == {"event": "x"}
        assert response["body"]["aws_request_id"] == "test-request-id"

    @pytest.mark.asyncio
    async def test_app_reraises_enrichment_errors(self, settings):
        error = CatalogError("boom", product_id="A")
        with patch("enricher.app.on_track", AsyncMock(side_effect=error)):
            with pytest.raises(CatalogError):
                await app({"event": "x"}, None, settings=settings)

    def test_lambda_handler_reads_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("SEGMENT_HTTP_API_KEY", "env-write-key")

        with patch(
            "enricher.app.on_track", AsyncMock(return_value={"event": "x"})
        ) as mock_on_track:
            response = lambda_handler({"event": "x"}, None)

        assert response["statusCode"] == 200
        settings = mock_on_track.await_args.args[1]
        assert settings.http_api_key == "env-write-key"
