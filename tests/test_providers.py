"""
Tests for the reference-data provider, the DataFrame query executor and
configuration loading.
"""

from pathlib import Path

import pandas as pd
import pytest

from cascade_filters.config.dashboard_config import load_config
from cascade_filters.models import Option, PaginatedResult, QueryExecutionError, ReferenceLookupError
from cascade_filters.services.providers.dataframe_query_executor import (
    QUERY_MAPPINGS, Criterion, DataFrameQueryExecutor, QueryMapping
)
from cascade_filters.services.providers.static_lookup_provider import StaticLookupProvider
from cascade_filters.services.utils.service_container import ServiceContainer
from conftest import REFERENCE_LEVELS

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def reservations():
    records = pd.DataFrame([
        {'id': 'r1', 'code': 'R-1', 'accountId': 'acc-1', 'accountName': 'Bosphorus', 'statusId': 'st-confirmed',
         'typeId': 'rt-hotel', 'transactionDate': '2024-02-01', 'amount': '100', 'note': 'Sea view', 'createdAt': '2024-01-01'},
        {'id': 'r2', 'code': 'R-2', 'accountId': 'acc-2', 'accountName': 'Anatolia', 'statusId': 'st-pending',
         'typeId': 'rt-tour', 'transactionDate': '2024-02-10', 'amount': '200', 'note': 'Balloon', 'createdAt': '2024-01-02'},
        {'id': 'r3', 'code': 'R-3', 'accountId': 'acc-1', 'accountName': 'Bosphorus', 'statusId': 'st-pending',
         'typeId': 'rt-flight', 'transactionDate': '2024-03-01', 'amount': '300', 'note': 'Meeting', 'createdAt': '2024-01-03'},
    ])
    return DataFrameQueryExecutor(records, QUERY_MAPPINGS['reservations'])


def query(**overrides):
    base = {'text': None, 'pageIndex': 0, 'pageSize': 10, 'orderBy': 'createdAt', 'orderDirection': 'DESC'}
    base.update(overrides)
    return base


# ============================================================================
# StaticLookupProvider
# ============================================================================

@pytest.mark.anyio
class TestStaticLookupProvider:
    """Test the in-memory reference-data provider."""

    async def test_root_level(self):
        """Test loading a root level."""
        provider = StaticLookupProvider(REFERENCE_LEVELS)
        options = await provider.fetch_options('country')
        assert options == [Option('TR', 'Turkey'), Option('US', 'United States')]

    async def test_dependent_level(self):
        """Test loading a level keyed by parent id."""
        provider = StaticLookupProvider(REFERENCE_LEVELS)
        assert [o.value for o in await provider.fetch_options('city', 'US')] == ['NYC', 'SFO']
        assert await provider.fetch_options('city', 'DE') == []
        assert await provider.fetch_options('city', None) == []
        assert provider.is_dependent('city')
        assert not provider.is_dependent('country')

    async def test_unknown_level_raises(self):
        """Test that an unknown level raises a lookup error."""
        provider = StaticLookupProvider(REFERENCE_LEVELS)
        with pytest.raises(ReferenceLookupError) as exc_info:
            await provider.fetch_options('planet')
        assert exc_info.value.level_id == 'planet'

    async def test_unavailable_level_raises(self):
        """Test a level configured as unavailable."""
        provider = StaticLookupProvider(REFERENCE_LEVELS, unavailable_levels=['city'])
        with pytest.raises(ReferenceLookupError):
            await provider.fetch_options('city', 'TR')
        assert provider.call_count == 1

    async def test_from_yaml(self, tmp_path):
        """Test loading reference data from YAML."""
        path = tmp_path / 'reference.yaml'
        path.write_text(
            "levels:\n"
            "  country:\n"
            "    - {id: 'TR', name: 'Turkey'}\n"
            "  city:\n"
            "    'TR':\n"
            "      - {id: 'ANK', name: 'Ankara'}\n"
        )
        provider = StaticLookupProvider.from_yaml(path)
        assert provider.level_ids == ['country', 'city']
        assert await provider.fetch_options('city', 'TR') == [Option('ANK', 'Ankara')]

    async def test_bundled_reference_data(self):
        """Test the reference data shipped with the project."""
        provider = StaticLookupProvider.from_yaml(PROJECT_ROOT / 'data' / 'reference_data.yaml')
        districts = await provider.fetch_options('district', 'CAN')
        assert 'KIZ' in [option.value for option in districts]

    def test_invalid_level_shape(self):
        """Test that malformed level data is rejected."""
        with pytest.raises(ValueError):
            StaticLookupProvider({'country': 'TR'})


# ============================================================================
# DataFrameQueryExecutor
# ============================================================================

@pytest.mark.anyio
class TestDataFrameQueryExecutor:
    """Test filtering, sorting and paging records."""

    async def test_no_criteria_returns_everything(self, reservations):
        """Test an unfiltered query."""
        result = await reservations.run_query(query())
        assert isinstance(result, PaginatedResult)
        assert result.item_count == 3
        assert result.page_count == 1
        assert [item['id'] for item in result.items] == ['r3', 'r2', 'r1']

    async def test_membership_criteria_combine(self, reservations):
        """Test that several membership criteria combine."""
        result = await reservations.run_query(query(statusIds=['st-pending'], accountIds=['acc-1']))
        assert [item['id'] for item in result.items] == ['r3']

    async def test_equality_criterion(self):
        """Test an equality criterion."""
        records = pd.DataFrame([{'id': 'a', 'countryId': 'TR'}, {'id': 'b', 'countryId': 'US'}])
        mapping = QueryMapping(criteria={'countryId': Criterion('countryId', 'eq')}, text_columns=(), date_columns=())
        executor = DataFrameQueryExecutor(records, mapping)
        result = await executor.run_query({'countryId': 'US'})
        assert [item['id'] for item in result.items] == ['b']

    async def test_empty_list_means_no_filter(self, reservations):
        """Test that an empty id list does not filter."""
        result = await reservations.run_query(query(statusIds=[]))
        assert result.item_count == 3

    async def test_date_range_inclusive(self, reservations):
        """Test that both date bounds are inclusive."""
        result = await reservations.run_query(query(
            transactionDateStart='2024-02-01', transactionDateEnd='2024-02-10'
        ))
        assert sorted(item['id'] for item in result.items) == ['r1', 'r2']
        assert result.items[0]['transactionDate'] in ('2024-02-10', '2024-02-01')

    async def test_text_search_case_insensitive(self, reservations):
        """Test case-insensitive text search."""
        result = await reservations.run_query(query(text='BALLOON'))
        assert [item['id'] for item in result.items] == ['r2']

    async def test_sort_ascending(self, reservations):
        """Test ascending sort."""
        result = await reservations.run_query(query(orderBy='transactionDate', orderDirection='ASC'))
        assert [item['id'] for item in result.items] == ['r1', 'r2', 'r3']

    async def test_pagination(self, reservations):
        """Test paging through results."""
        result = await reservations.run_query(query(pageIndex=1, pageSize=2))
        assert result.page_count == 2
        assert result.page_index == 1
        assert [item['id'] for item in result.items] == ['r1']

    async def test_unknown_column_raises(self):
        """Test that a missing column raises a query error."""
        mapping = QueryMapping(criteria={'colorId': Criterion('color', 'eq')}, text_columns=(), date_columns=())
        executor = DataFrameQueryExecutor(pd.DataFrame([{'id': '1'}]), mapping)
        with pytest.raises(QueryExecutionError):
            await executor.run_query({'colorId': 'red'})

    def test_breakdown(self, reservations):
        """Test counting records per status."""
        counts = reservations.breakdown(query())
        assert dict(zip(counts['statusId'], counts['count'])) == {'st-pending': 2, 'st-confirmed': 1}

    def test_breakdown_empty(self, reservations):
        """Test the breakdown of an empty result."""
        counts = reservations.breakdown(query(text='nothing matches'))
        assert counts.empty

    def test_for_screen_unknown(self, tmp_path):
        """Test that a screen without a mapping is rejected."""
        with pytest.raises(ValueError):
            DataFrameQueryExecutor.for_screen('invoices', tmp_path / 'invoices.csv')


# ============================================================================
# Configuration
# ============================================================================

class TestConfiguration:
    """Test config loading and service wiring."""

    def test_bundled_config_is_valid(self):
        """Test the config shipped with the project."""
        config = load_config(PROJECT_ROOT / 'dashboard.yaml')
        assert config.validate() == []
        assert set(config.record_paths) == {'accounts', 'reservations'}

    def test_env_var_selects_config(self, tmp_path, monkeypatch):
        """Test selecting the config file by environment variable."""
        path = tmp_path / 'custom.yaml'
        path.write_text("reference_data_path: ref.yaml\nstrict_validation: true\n")
        monkeypatch.setenv('CASCADE_FILTERS_CONFIG', str(path))

        config = load_config()
        assert config.strict_validation
        assert config.reference_data_path == tmp_path / 'ref.yaml'

    def test_missing_config_raises(self, tmp_path):
        """Test loading a config file that does not exist."""
        with pytest.raises(OSError):
            load_config(tmp_path / 'missing.yaml')

    def test_service_container_builds_controllers(self):
        """Test that the container wires controllers per screen."""
        services = ServiceContainer.initialize(load_config(PROJECT_ROOT / 'dashboard.yaml'))
        assert set(services.executors) == {'accounts', 'reservations'}

        controller = services.create_controller('reservations')
        assert controller.screen.name == 'reservations'
        assert controller.executor is services.executors['reservations']
        assert controller.screen.get_field('pageSize').default_value() == 10
