"""
Global pytest configuration for stepwise
Shared field and step definitions for an age-gated application journey
"""

import pytest


@pytest.fixture
def fields():
    """Field registry used across journey tests"""
    return {
        'name': {'validate': ['required', {'type': 'maxlength', 'arguments': 20}]},
        'age': {'validate': ['required', 'numeric'], 'invalidates': ['guardian']},
        'guardian': {'validate': ['required']},
        'contact': {'options': ['email', 'phone'], 'validate': 'required'},
        'email': {'validate': ['required', 'email'], 'dependent': {'field': 'contact', 'value': 'email'}},
        'phone': {'validate': ['required', 'phonenumber'], 'dependent': {'field': 'contact', 'value': 'phone'}},
    }


@pytest.fixture
def steps():
    """Step graph: /start -> /name -> /age -> (/guardian ->) /contact -> /done"""
    return {
        '/start': {'entryPoint': True, 'noPost': True, 'next': '/name'},
        '/name': {'fields': ['name'], 'next': '/age'},
        '/age': {
            'fields': ['age'],
            'next': [
                {'field': 'age', 'op': '<', 'value': 18, 'next': '/guardian'},
                '/contact',
            ],
        },
        '/guardian': {'fields': ['guardian'], 'next': '/contact'},
        '/contact': {'fields': ['contact', 'email', 'phone'], 'next': '/done'},
        '/done': {'noPost': True},
    }
