"""Pytest configuration and shared fixtures."""
import pytest

import immutable_staging.config as config_module


@pytest.fixture(autouse=True)
def reset_default_options():
    """Restore the process-wide default options after each test."""
    original_defaults = config_module.get_default_options()

    yield

    config_module.set_default_options(original_defaults)


@pytest.fixture
def simple_state():
    """Nested mappings with scalars at several depths."""
    return {
        'one': {
            'three': 10,
            'four': 'testing!',
            'nestedObject': {
                'five': 'five alive!',
            },
        },
        'two': {
            'six': 30,
        },
        'seven': 'seven in heaven!',
    }


@pytest.fixture
def array_state():
    """Mappings holding sequences, including nested sequences and mappings."""
    return {
        'scalar': 1,
        'array': [
            "I'm first",
            "I'm second",
            "I'm third",
            {
                'nested': "I'm in a nested object",
            },
            ["I'm in a nested array"],
        ],
        'secondArray': [
            "I'm another array element",
            "I'm yet another element",
        ],
    }


@pytest.fixture
def dag_state():
    """Four parents sharing two children by reference."""
    shared_one = {
        'one': "I'm shared",
        'two': 'me too',
    }
    shared_two = {
        'three': 'me three',
        'four': 'me four',
    }
    return {
        'topLevelOne': {'object': shared_one},
        'topLevelTwo': {'object': shared_one},
        'topLevelThree': {'object': shared_two},
        'topLevelFour': {'object': shared_two},
    }
