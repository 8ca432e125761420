"""
Tests for UrlCodec.

Covers canonical encoding, tolerant decoding and the query-string helpers.
"""

import pytest
from datetime import date

from cascade_filters.models import CascadeSelection, FieldKind, FilterFieldSpec, FilterState
from cascade_filters.services.core.url_codec import UrlCodec
from cascade_filters.services.pages.screen_specs import (
    ACCOUNTS_SCREEN, CITY_LEVEL, COUNTRY_LEVEL, RESERVATIONS_SCREEN
)

REGION_FIELDS = (
    FilterFieldSpec("text", FieldKind.TEXT, param="search"),
    FilterFieldSpec("region", FieldKind.CASCADE, levels=(COUNTRY_LEVEL, CITY_LEVEL)),
    FilterFieldSpec("pageIndex", FieldKind.NUMBER, param="page", default=0, minimum=0),
)

# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def codec():
    return UrlCodec(ACCOUNTS_SCREEN.fields)


@pytest.fixture
def defaults():
    return FilterState.defaults(ACCOUNTS_SCREEN.fields)


@pytest.fixture
def region_codec():
    return UrlCodec(REGION_FIELDS)


def location(country=None):
    return CascadeSelection.from_dict({'country': country}, ['country'])


def region(**levels):
    return CascadeSelection.from_dict(levels, ['country', 'city'])


class TestEncoding:
    """Test turning a FilterState into a canonical query string."""

    def test_defaults_encode_to_empty_query(self, codec, defaults):
        """Test that an all-default state encodes to nothing."""
        assert codec.encode(defaults) == {}
        assert codec.encode_query(defaults) == ''

    def test_shareable_query(self, codec, defaults):
        """Test the canonical query for text, date and country."""
        state = defaults.with_values({
            'text': 'foo',
            'startDate': date(2024, 1, 1),
            'location': location('TR'),
        })
        assert codec.encode_query(state) == 'search=foo&startDate=2024-01-01&country=TR'

    def test_multi_select_comma_joined(self, codec, defaults):
        """Test that multi-select ids are joined with unescaped commas."""
        state = defaults.with_values({'segments': ('seg-ent', 'seg-smb')})
        assert codec.encode_query(state) == 'segments=seg-ent,seg-smb'

    def test_cities_follow_country(self, codec, defaults):
        """Test that selected cities are written right after their country."""
        state = defaults.with_values({'location': location('TR'), 'cities': ('IST', 'ANK')})
        assert codec.encode_query(state) == 'country=TR&cities=IST,ANK'

    def test_cascade_levels_use_own_params(self, region_codec):
        """Test that every cascade level gets its own URL key."""
        state = FilterState.defaults(REGION_FIELDS).with_value('region', region(country='TR', city='ANK'))
        assert region_codec.encode(state) == {'country': 'TR', 'city': 'ANK'}

    def test_pagination_only_when_not_default(self, codec, defaults):
        """Test that paging and sorting appear only when changed."""
        state = defaults.with_values({'pageIndex': 2, 'orderDirection': 'ASC'})
        assert codec.encode(state) == {'page': '2', 'orderDirection': 'ASC'}

    def test_special_characters_escaped(self, codec, defaults):
        """Test that reserved characters in free text are escaped."""
        state = defaults.with_value('text', 'a&b c')
        assert codec.encode_query(state) == 'search=a%26b+c'


class TestDecoding:
    """Test tolerant decoding of query strings into drafts."""

    def test_round_trip(self, codec, defaults):
        """Test that an encoded state decodes back to the same values."""
        state = defaults.with_values({
            'text': 'foo',
            'startDate': date(2024, 1, 1),
            'endDate': date(2024, 2, 1),
            'assignedUsers': ('u1', 'u2'),
            'location': location('TR'),
            'cities': ('IST', 'ANK'),
            'pageIndex': 1,
            'orderBy': 'name',
        })
        draft = codec.decode_query(codec.encode_query(state))
        assert dict(draft.values) == state.to_dict()
        assert draft.dropped_params == ()

    def test_missing_params_get_defaults(self, codec, defaults):
        """Test that absent keys fall back to field defaults."""
        draft = codec.decode({})
        assert dict(draft.values) == defaults.to_dict()

    def test_malformed_values_dropped(self, codec):
        """Test that unparseable values are dropped and reported."""
        draft = codec.decode({'startDate': 'not-a-date', 'page': '-4', 'orderDirection': 'up'})
        assert draft.get('startDate') is None
        assert draft.get('pageIndex') == 0
        assert draft.get('orderDirection') == 'DESC'
        assert set(draft.dropped_params) == {'startDate', 'page', 'orderDirection'}

    def test_unknown_params_dropped(self, codec):
        """Test that keys no field owns are reported."""
        draft = codec.decode({'utm_source': 'mail', 'search': 'x'})
        assert draft.get('text') == 'x'
        assert draft.dropped_params == ('utm_source',)

    def test_orphan_child_level_dropped(self, region_codec):
        """Test that a child level without its parent is dropped."""
        draft = region_codec.decode({'city': 'ANK'})
        assert draft.get('region') == CascadeSelection()
        assert draft.dropped_params == ('city',)

    def test_cities_decoded_as_opaque_ids(self, codec):
        """Test that cities decode without reference data."""
        draft = codec.decode_query('cities=IST,ANK,IST')
        assert draft.get('cities') == ('IST', 'ANK')
        assert draft.dropped_params == ()

    def test_direction_case_insensitive(self, codec):
        """Test that sort direction is matched case-insensitively."""
        assert codec.decode({'orderDirection': 'asc'}).get('orderDirection') == 'ASC'

    def test_list_values_use_last(self, codec):
        """Test that the last of repeated values wins."""
        draft = codec.decode({'search': ['first', 'second']})
        assert draft.get('text') == 'second'

    def test_decode_never_raises_on_garbage(self, codec):
        """Test that a mangled query string still decodes."""
        draft = codec.decode_query('?%%%&&=&search')
        assert draft.get('text') == ''

    def test_reservation_params(self):
        """Test the reservation list parameter names."""
        codec = UrlCodec(RESERVATIONS_SCREEN.fields)
        draft = codec.decode_query(
            'text=foo&statusIds=st-pending,st-confirmed&accountIds=acc-1&typeIds=rt-hotel'
            '&transactionDateStart=2024-03-01&transactionDateEnd=2024-03-31&pageIndex=2&pageSize=25'
        )
        assert draft.get('text') == 'foo'
        assert draft.get('statuses') == ('st-pending', 'st-confirmed')
        assert draft.get('accounts') == ('acc-1',)
        assert draft.get('types') == ('rt-hotel',)
        assert draft.get('transactionDateStart') == date(2024, 3, 1)
        assert draft.get('transactionDateEnd') == date(2024, 3, 31)
        assert draft.get('pageIndex') == 2
        assert draft.get('pageSize') == 25
        assert draft.dropped_params == ()

    def test_reservation_short_names_unknown(self):
        """Test that abbreviated reservation keys are not accepted."""
        codec = UrlCodec(RESERVATIONS_SCREEN.fields)
        draft = codec.decode_query('status=st-pending&from=2024-03-01&account=acc-1')
        assert draft.get('statuses') == ()
        assert set(draft.dropped_params) == {'status', 'from', 'account'}


class TestQueryStringHelpers:
    """Test the raw query-string parsing helpers."""

    def test_parse_full_url(self):
        """Test parsing the query part of a full URL."""
        params = UrlCodec.parse_query_string('https://app.example/accounts?search=foo&country=TR#top')
        assert params == {'search': 'foo', 'country': 'TR'}

    def test_parse_drops_blank_values(self):
        """Test that empty values are ignored."""
        assert UrlCodec.parse_query_string('search=&country=TR') == {'country': 'TR'}

    def test_parse_empty(self):
        """Test parsing an empty string."""
        assert UrlCodec.parse_query_string('') == {}

    def test_repeated_key_last_wins(self):
        """Test that a repeated key keeps its last value."""
        assert UrlCodec.parse_query_string('search=a&search=b') == {'search': 'b'}
