"""
Tests for JourneyService - YAML journey definitions and scripted walks
"""

import asyncio

import pytest
import yaml

from stepwise.core.exceptions import ConfigError, ConfigurationError
from stepwise.core.journey.journey_models import JourneyConfig
from stepwise.services.journey.journey_service import JourneyService


JOURNEY = {
    'name': 'apply',
    'fields': {
        'age': {'validate': ['required', 'numeric']},
        'guardian': {'validate': 'required'},
        'consent': {'options': ['yes', 'no'], 'validate': 'required'},
    },
    'steps': {
        '/start': {'entryPoint': True, 'noPost': True, 'next': '/age'},
        '/age': {
            'fields': ['age'],
            'next': [
                {'field': 'age', 'op': '<', 'value': 18, 'next': '/guardian'},
                '/consent',
            ],
        },
        '/guardian': {'fields': ['guardian'], 'next': '/consent'},
        '/consent': {
            'fields': ['consent'],
            'next': [{'field': 'consent', 'value': 'no', 'next': '/declined'}, 'https://example.com/complete'],
        },
        '/declined': {'noPost': True},
    },
}


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return path


@pytest.fixture
def journey_file(tmp_path):
    return write_yaml(tmp_path / 'journey.yaml', JOURNEY)


@pytest.fixture
def service():
    return JourneyService()


class TestLoadConfig:

    def test_load_valid_definition(self, service, journey_file):
        config = asyncio.run(service.load_config(journey_file))
        assert config.name == 'apply'
        assert set(config.steps) == {'/start', '/age', '/guardian', '/consent', '/declined'}
        assert config.steps['/start'].entry_point

    def test_missing_file(self, service, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            asyncio.run(service.load_config(tmp_path / 'missing.yaml'))

    def test_invalid_yaml(self, service, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text("name: [unclosed", encoding='utf-8')
        with pytest.raises(ConfigError, match="Invalid YAML"):
            asyncio.run(service.load_config(path))

    def test_missing_steps_key(self, service, tmp_path):
        path = write_yaml(tmp_path / 'empty.yaml', {'name': 'x'})
        with pytest.raises(ConfigError, match="Missing required config keys"):
            asyncio.run(service.load_config(path))

    def test_wrong_field_types(self, service, tmp_path):
        path = write_yaml(tmp_path / 'bad.yaml', {'name': 'x', 'steps': {'/a': {'fields': 'not-a-list'}}})
        with pytest.raises(ConfigError, match="Failed to load journey config"):
            asyncio.run(service.load_config(path))

    def test_build_wizard_rejects_unknown_validator(self, service, tmp_path):
        data = {**JOURNEY, 'fields': {**JOURNEY['fields'], 'age': {'validate': 'adult'}}}
        config = asyncio.run(service.load_config(write_yaml(tmp_path / 'j.yaml', data)))
        with pytest.raises(ConfigurationError, match="Undefined validator: adult"):
            service.build_wizard(config)

    def test_custom_functions_by_name(self, tmp_path):
        def adult(value, context=None):
            return int(value) >= 18

        def is_returning(context):
            return context.extra.get('returning', False)

        data = {
            'name': 'custom',
            'fields': {'age': {'validate': ['required', 'adult']}},
            'steps': {
                '/age': {'entryPoint': True, 'fields': ['age'],
                         'next': [{'fn': 'isReturning', 'next': '/welcome-back'}, '/welcome']},
                '/welcome': {}, '/welcome-back': {},
            },
        }
        service = JourneyService(validators={'adult': adult}, condition_functions={'isReturning': is_returning})
        config = asyncio.run(service.load_config(write_yaml(tmp_path / 'j.yaml', data)))
        wizard = service.build_wizard(config)
        assert wizard.submit('/age', {'age': '12'}, [], {}).errors['age'].type == 'adult'
        assert wizard.submit('/age', {'age': '40'}, [], {}, extra={'returning': True}).next == '/welcome-back'


class TestWalk:

    def _wizard(self, service, journey_file):
        return service.build_wizard(asyncio.run(service.load_config(journey_file)))

    def test_adult_path_to_external_exit(self, service, journey_file):
        wizard = self._wizard(service, journey_file)
        result = service.walk(wizard, {'/age': {'age': '30'}, '/consent': {'consent': 'yes'}})
        assert result.success
        assert result.path == ['/start', '/age', '/consent']
        assert result.exit == 'https://example.com/complete'
        assert result.values == {'age': '30', 'consent': 'yes'}

    def test_minor_path_through_guardian(self, service, journey_file):
        wizard = self._wizard(service, journey_file)
        answers = {'/age': {'age': '12'}, '/guardian': {'guardian': 'Bob'}, '/consent': {'consent': 'no'}}
        result = service.walk(wizard, answers)
        assert result.success
        assert result.path == ['/start', '/age', '/guardian', '/consent', '/declined']
        assert result.exit is None

    def test_validation_failure_stops_walk(self, service, journey_file):
        wizard = self._wizard(service, journey_file)
        result = service.walk(wizard, {'/age': {'age': 'old'}})
        assert not result.success
        assert result.step == '/age'
        assert result.errors['age'].type == 'numeric'

    def test_start_step_not_reachable(self, service, journey_file):
        wizard = self._wizard(service, journey_file)
        result = service.walk(wizard, {}, start='/consent')
        assert not result.success
        assert result.step == '/consent'
        assert 'without prerequisite' in result.error

    def test_loop_stops_at_max_steps(self, service):
        config = JourneyConfig(name='loop', steps={
            '/a': {'entryPoint': True, 'noPost': True, 'next': '/b'},
            '/b': {'noPost': True, 'next': '/a'},
        })
        wizard = service.build_wizard(config)
        result = service.walk(wizard, {}, max_steps=5)
        assert not result.success
        assert len(result.path) == 5
        assert 'did not finish' in result.error

    def test_load_answers(self, service, tmp_path):
        path = write_yaml(tmp_path / 'answers.yaml', {'/age': {'age': '30'}, '/start': None})
        assert asyncio.run(service.load_answers(path)) == {'/age': {'age': '30'}, '/start': {}}

    def test_load_answers_rejects_non_mapping(self, service, tmp_path):
        path = write_yaml(tmp_path / 'answers.yaml', {'/age': ['30']})
        with pytest.raises(ConfigError):
            asyncio.run(service.load_answers(path))
