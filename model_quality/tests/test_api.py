"""
Test suite for the /model-quality API endpoints.

Endpoint functions are called directly with the dashboard services patched
where the router imports them. A small TestClient section exercises query
validation and JSON serialization through the application itself.

The tests verify:
1. Window defaulting and the configured upper bound
2. Filters are forwarded to the filtered dashboard
3. ValueError maps to 400, any other failure to 500
4. Summary responses pair the dashboard with its cards
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from model_quality.api.model_quality import get_dashboard, get_drilldown, get_summary
from model_quality.core.dependencies import get_settings_dependency
from model_quality.main import app
from model_quality.models import DashboardSummaryResponse, SegmentKey
from model_quality.models.schemas import DrilldownData
from model_quality.tests.conftest import build_dashboard, make_record


API = 'model_quality.api.model_quality'


@pytest.fixture
def dashboard():
    return build_dashboard([make_record(0.5, i % 2 == 0) for i in range(60)])


@pytest.fixture
def drilldown():
    return DrilldownData(
        segmentKey=SegmentKey.MODE,
        segmentValue='standard',
        reliabilityCurve=[],
        ece=0.0,
        featureDrift=[],
        sampleOffers=[],
        sampleSize=0,
    )


class TestGetDashboard:
    """Tests for GET /dashboard."""

    @pytest.mark.asyncio
    async def test_defaults_window_and_forwards_filters(self, mock_settings, dashboard) -> None:
        compute = AsyncMock(return_value=dashboard)
        with patch(f"{API}.compute_filtered_dashboard", new=compute):
            result = await get_dashboard(settings=mock_settings, days=None, mode='standard', segment='sf')

        assert result is dashboard
        days_back, filters = compute.call_args.args
        assert days_back == 30
        assert filters.mode == 'standard'
        assert filters.segment == 'sf'

    @pytest.mark.asyncio
    async def test_window_above_configured_maximum(self, mock_settings) -> None:
        mock_settings.max_days_back = 90
        with pytest.raises(HTTPException) as exc_info:
            await get_dashboard(settings=mock_settings, days=120, mode=None, segment=None)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_value_error_is_bad_request(self, mock_settings) -> None:
        compute = AsyncMock(side_effect=ValueError('days_back must be a positive number of days, got 0'))
        with patch(f"{API}.compute_filtered_dashboard", new=compute):
            with pytest.raises(HTTPException) as exc_info:
                await get_dashboard(settings=mock_settings, days=10, mode=None, segment=None)

        assert exc_info.value.status_code == 400
        assert 'days_back' in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_unexpected_error_is_server_error(self, mock_settings) -> None:
        compute = AsyncMock(side_effect=OSError('connection refused'))
        with patch(f"{API}.compute_filtered_dashboard", new=compute):
            with pytest.raises(HTTPException) as exc_info:
                await get_dashboard(settings=mock_settings, days=10, mode=None, segment=None)

        assert exc_info.value.status_code == 500
        assert 'connection refused' in exc_info.value.detail


class TestGetSummary:
    """Tests for GET /summary."""

    @pytest.mark.asyncio
    async def test_returns_dashboard_and_cards(self, mock_settings, dashboard) -> None:
        with patch(f"{API}.compute_filtered_dashboard", new=AsyncMock(return_value=dashboard)):
            result = await get_summary(settings=mock_settings, days=7, mode=None, segment=None)

        assert isinstance(result, DashboardSummaryResponse)
        assert result.dashboard is dashboard
        assert [c.id for c in result.cards] == [
            'calibration', 'worstSegment', 'featureDrift', 'ranking', 'narrative',
        ]

    @pytest.mark.asyncio
    async def test_failure_is_server_error(self, mock_settings) -> None:
        compute = AsyncMock(side_effect=RuntimeError('analyzer failed'))
        with patch(f"{API}.compute_filtered_dashboard", new=compute):
            with pytest.raises(HTTPException) as exc_info:
                await get_summary(settings=mock_settings, days=7, mode=None, segment=None)

        assert exc_info.value.status_code == 500


class TestGetDrilldown:
    """Tests for GET /drilldown."""

    @pytest.mark.asyncio
    async def test_uses_configured_sample_limit(self, mock_settings, drilldown) -> None:
        mock_settings.drilldown_sample_limit = 5
        compute = AsyncMock(return_value=drilldown)
        with patch(f"{API}.compute_drilldown", new=compute):
            result = await get_drilldown(
                settings=mock_settings, segmentKey='mode', segmentValue='standard', days=None,
            )

        assert result is drilldown
        assert compute.call_args.args == (30, 'mode', 'standard')
        assert compute.call_args.kwargs == {'sample_limit': 5}

    @pytest.mark.asyncio
    async def test_unknown_segment_key_is_bad_request(self, mock_settings) -> None:
        compute = AsyncMock(side_effect=ValueError("Unknown segment key 'region'"))
        with patch(f"{API}.compute_drilldown", new=compute):
            with pytest.raises(HTTPException) as exc_info:
                await get_drilldown(settings=mock_settings, segmentKey='region', segmentValue='EU', days=30)

        assert exc_info.value.status_code == 400


class TestRoutes:
    """Query validation and serialization through the application."""

    @pytest.fixture
    def client(self, mock_settings):
        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_days_out_of_range(self, client) -> None:
        assert client.get('/model-quality/dashboard', params={'days': 0}).status_code == 422
        assert client.get('/model-quality/dashboard', params={'days': 366}).status_code == 422

    def test_drilldown_requires_segment(self, client) -> None:
        assert client.get('/model-quality/drilldown').status_code == 422

    def test_dashboard_json(self, client, dashboard) -> None:
        with patch(f"{API}.compute_filtered_dashboard", new=AsyncMock(return_value=dashboard)):
            response = client.get('/model-quality/dashboard', params={'days': 30})

        assert response.status_code == 200
        body = response.json()
        assert set(body) >= {'calibration', 'segmentDrift', 'featureDrift', 'ranking', 'narrative'}
        assert set(body['dateRange']) == {'from', 'to'}

    def test_health(self, client) -> None:
        assert client.get('/health').json() == {'status': 'healthy'}

    def test_root(self, client) -> None:
        body = client.get('/').json()
        assert body['name'] == 'Model Quality Monitor API'
        assert body['docs'] == '/docs'

    def test_cors_allows_admin_origin(self, client) -> None:
        response = client.options('/health', headers={
            'Origin': 'http://localhost:3000',
            'Access-Control-Request-Method': 'GET',
        })

        assert response.status_code == 200
        assert response.headers['access-control-allow-origin'] == 'http://localhost:3000'
