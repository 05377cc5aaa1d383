"""
Tests for the asynchronous projection run.
"""
import asyncio
import time

import pytest

from mrp_planner.projection.adapters import InMemoryDataSource, SqlDataSource
from mrp_planner.projection.models import HealthStatus
from mrp_planner.projection.orchestrator import (
    MRPProjectionService,
    ProjectionDataError,
    run_projection_sync,
)
from mrp_planner.settings import PlannerSettings


class FailingSource(InMemoryDataSource):
    def list_forecasts(self):
        raise ConnectionError("forecast store unavailable")


class SlowSource(InMemoryDataSource):
    def list_products(self):
        time.sleep(0.5)
        return super().list_products()


class TestRunProjection:

    def test_end_to_end_in_memory(self, sample_source, settings):
        projections = asyncio.run(MRPProjectionService(sample_source, settings).run_projection())

        by_code = {p.part_code: p for p in projections}
        assert set(by_code) == {"C100", "C200", "C300"}
        assert by_code["C100"].overall_health == HealthStatus.RISK
        assert by_code["C100"].net_four_month_demand == 120
        assert by_code["C200"].overall_health == HealthStatus.HEALTHY
        assert by_code["C300"].overall_health == HealthStatus.SHORTAGE

    def test_idempotent(self, sample_source, settings):
        first = run_projection_sync(sample_source, settings)
        second = run_projection_sync(sample_source, settings)
        assert [p.to_dict() for p in first] == [p.to_dict() for p in second]

    def test_settings_flow_into_engines(self, sample_source):
        settings = PlannerSettings(planning_horizon_months=1)
        projections = run_projection_sync(sample_source, settings)
        c100 = next(p for p in projections if p.part_code == "C100")
        assert c100.four_month_demand == 200
        assert len(c100.projections) == 1

    def test_summary_and_recommendations(self, sample_source, settings):
        service = MRPProjectionService(sample_source, settings)
        summary = asyncio.run(service.get_summary())
        recommendations = asyncio.run(service.get_recommendations())

        assert summary.total_components == 3
        assert [p.part_code for p in summary.critical_components] == ["C300"]
        assert [r.part_code for r in recommendations] == ["C300", "C100"]

    def test_sql_source(self, seeded_db, session_factory, settings):
        (projection,) = run_projection_sync(SqlDataSource(session_factory), settings)
        assert projection.part_code == "C100"
        assert projection.display_description == "Front label"
        assert [p.total_demand for p in projection.projections] == [200, 100]


class TestFailures:

    def test_fetch_error_is_normalized(self, sample_source, settings):
        source = FailingSource(
            sample_source.components, sample_source.products,
            sample_source.bom_items, sample_source.forecasts,
        )
        with pytest.raises(ProjectionDataError, match="Failed to load MRP input data") as exc:
            run_projection_sync(source, settings)
        assert isinstance(exc.value.__cause__, ConnectionError)

    def test_timeout_is_normalized(self, sample_source):
        source = SlowSource(sample_source.components, sample_source.products)
        settings = PlannerSettings(fetch_timeout_seconds=0.05)
        with pytest.raises(ProjectionDataError, match="timed out"):
            run_projection_sync(source, settings)
