"""
Tests for journey reachability, next-step resolution and invalidation
"""

import pytest

from stepwise.core.exceptions import ConfigurationError, JourneyError
from stepwise.core.journey.journey_models import HistoryEntry, RequestContext
from stepwise.core.journey.resolver import JourneyResolver, is_external_url


@pytest.fixture
def resolver(steps):
    return JourneyResolver(steps)


class TestReachability:
    """is_step_allowed / check_step"""

    def test_entry_point_always_allowed(self, resolver):
        assert resolver.is_step_allowed('/start', [])
        assert resolver.is_step_allowed('/start', [HistoryEntry(step='/name', next='/age')])

    def test_missing_prereq_on_empty_history(self, resolver):
        assert not resolver.is_step_allowed('/age', [])
        with pytest.raises(JourneyError) as excinfo:
            resolver.check_step('/age', [])
        assert excinfo.value.code == JourneyError.MISSING_PREREQ
        assert excinfo.value.step == '/age'
        assert excinfo.value.fallback is None

    def test_reachable_from_recorded_next(self, resolver):
        history = [HistoryEntry(step='/start', next='/name')]
        assert resolver.is_step_allowed('/name', history)
        resolver.check_step('/name', history)

    def test_fallback_to_latest_history_step(self, resolver):
        history = [HistoryEntry(step='/start', next='/name'), HistoryEntry(step='/name', next='/age')]
        with pytest.raises(JourneyError) as excinfo:
            resolver.check_step('/contact', history)
        assert excinfo.value.code == JourneyError.STEP_NOT_ALLOWED
        assert excinfo.value.fallback == '/name'

    def test_prereq_in_history(self):
        resolver = JourneyResolver({'/a': {'next': '/b'}, '/summary': {'prereq': ['/x', '/a']}})
        assert resolver.is_step_allowed('/summary', [HistoryEntry(step='/a', next='/b')])
        assert not resolver.is_step_allowed('/summary', [HistoryEntry(step='/b', next='/c')])

    def test_check_journey_disabled(self):
        resolver = JourneyResolver({'/anywhere': {'checkJourney': False}})
        assert resolver.is_step_allowed('/anywhere', [])

    def test_reset_journey_step_allowed_on_empty_history(self):
        resolver = JourneyResolver({'/again': {'resetJourney': True, 'fields': ['x']}})
        assert resolver.is_step_allowed('/again', [])
        assert not resolver.is_step_allowed('/again', [HistoryEntry(step='/other', next='/elsewhere')])

    def test_unknown_step(self, resolver):
        with pytest.raises(ConfigurationError, match="Unknown step"):
            resolver.is_step_allowed('/nope', [])


class TestNextStep:

    def test_conditional_next(self, resolver):
        assert resolver.next_step('/age', RequestContext(values={'age': 16})) == '/guardian'
        assert resolver.next_step('/age', RequestContext(values={'age': 21})) == '/contact'

    def test_terminal_step(self, resolver):
        assert resolver.next_step('/done', RequestContext()) is None

    def test_no_matching_branch_is_configuration_error(self):
        resolver = JourneyResolver({'/q': {'next': [{'field': 'a', 'value': 'x', 'next': '/x'}]}})
        with pytest.raises(ConfigurationError, match="No next step matched"):
            resolver.next_step('/q', {'a': 'y'})

    def test_callable_next(self):
        resolver = JourneyResolver({'/q': {'next': lambda context: f"/{context.values['dest']}"}})
        assert resolver.next_step('/q', RequestContext(values={'dest': 'there'})) == '/there'

    def test_malformed_condition_fails_at_construction(self):
        with pytest.raises(ConfigurationError):
            JourneyResolver({'/q': {'next': [{'next': '/x'}]}})

    def test_external_urls(self):
        assert is_external_url('https://gov.example/finish')
        assert is_external_url('//cdn.example/x')
        assert not is_external_url('/done')
        assert not is_external_url(None)


class TestCompleteStep:

    def test_appends_entry_with_resolved_next(self, resolver):
        history = [HistoryEntry(step='/start', next='/name')]
        entry = resolver.complete_step('/name', RequestContext(values={'name': 'Ada'}), history, wizard='apply')
        assert history[-1] is entry
        assert entry.next == '/age'
        assert entry.fields == {'name': 'Ada'}
        assert entry.wizard == 'apply'

    def test_resolved_step_is_then_allowed(self, resolver):
        history = [HistoryEntry(step='/start', next='/name'), HistoryEntry(step='/name', next='/age')]
        entry = resolver.complete_step('/age', RequestContext(values={'age': 12}), history)
        assert resolver.is_step_allowed(entry.next, history)

    def test_resubmission_replaces_entry_in_place(self, resolver):
        history = [
            HistoryEntry(step='/name', next='/age'),
            HistoryEntry(step='/age', next='/contact'),
        ]
        resolver.complete_step('/name', RequestContext(values={'name': 'Bob'}), history)
        assert [entry.step for entry in history] == ['/name', '/age']
        assert history[0].fields == {'name': 'Bob'}

    def test_link_only_step_marked_skip(self, resolver):
        history = []
        entry = resolver.complete_step('/start', RequestContext(), history)
        assert entry.skip
        assert entry.next == '/name'


class TestInvalidate:
    """One-level invalidation cascade"""

    def _history(self):
        return [
            HistoryEntry(step='/start', next='/name'),
            HistoryEntry(step='/name', next='/age', fields={'name': 'Ada'}),
            HistoryEntry(step='/age', next='/guardian', fields={'age': '12'}),
            HistoryEntry(step='/guardian', next='/contact', fields={'guardian': 'Bob'}),
            HistoryEntry(step='/contact', next='/done', fields={'contact': 'email'}),
        ]

    def test_changed_value_clears_fields_and_truncates_history(self, resolver, fields):
        history = self._history()
        stored = {'name': 'Ada', 'age': '12', 'guardian': 'Bob', 'contact': 'email'}
        cleared = resolver.invalidate('/age', {'age': '30'}, stored, history, fields)
        assert cleared == ['guardian']
        assert 'guardian' not in stored
        assert stored['contact'] == 'email'
        assert [entry.step for entry in history] == ['/start', '/name', '/age']

    def test_unchanged_value_keeps_everything(self, resolver, fields):
        history = self._history()
        stored = {'age': '12', 'guardian': 'Bob'}
        assert resolver.invalidate('/age', {'age': '12'}, stored, history, fields) == []
        assert stored == {'age': '12', 'guardian': 'Bob'}
        assert len(history) == 5

    def test_step_not_in_history_truncates_from_invalidated_field(self, resolver, fields):
        history = [
            HistoryEntry(step='/start', next='/name'),
            HistoryEntry(step='/guardian', next='/contact', fields={'guardian': 'Bob'}),
            HistoryEntry(step='/contact', next='/done', fields={'contact': 'email'}),
        ]
        stored = {'guardian': 'Bob'}
        resolver.invalidate('/age', {'age': '30'}, stored, history, fields)
        assert [entry.step for entry in history] == ['/start']

    def test_cascade_is_one_level_deep(self):
        fields = {
            'a': {'invalidates': ['b']},
            'b': {'invalidates': ['c']},
            'c': {},
        }
        resolver = JourneyResolver({'/a': {'fields': ['a'], 'next': '/b'}})
        stored = {'a': 1, 'b': 2, 'c': 3}
        assert resolver.invalidate('/a', {'a': 9}, stored, [], fields) == ['b']
        assert stored == {'a': 1, 'c': 3}
