"""Closed vocabularies for the scoring state machine."""

from enum import Enum

from .errors import ValidationError


class ResultType(str, Enum):
    TOP_REGULAR = 'TOP_REGULAR'
    TOP_ISO = 'TOP_ISO'
    BOTTOM_REGULAR = 'BOTTOM_REGULAR'
    BOTTOM_ISO = 'BOTTOM_ISO'
    MISS = 'MISS'
    PULL_HOME = 'PULL_HOME'
    PULL_AWAY = 'PULL_AWAY'

    @classmethod
    def parse(cls, value) -> 'ResultType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationError(f'Unknown result type: {value}')


MAKES = frozenset({
    ResultType.TOP_REGULAR,
    ResultType.TOP_ISO,
    ResultType.BOTTOM_REGULAR,
    ResultType.BOTTOM_ISO,
})
PULLS = frozenset({ResultType.PULL_HOME, ResultType.PULL_AWAY})


def is_make(result_type) -> bool:
    return ResultType.parse(result_type) in MAKES


def is_pull(result_type) -> bool:
    return ResultType.parse(result_type) in PULLS


def is_shot(result_type) -> bool:
    return not is_pull(result_type)


def is_miss(result_type) -> bool:
    return ResultType.parse(result_type) is ResultType.MISS


class GameStatus(str, Enum):
    SCHEDULED = 'SCHEDULED'
    IN_PROGRESS = 'IN_PROGRESS'
    FINAL = 'FINAL'


class GamePhase(str, Enum):
    REGULATION = 'REGULATION'
    REDEMPTION = 'REDEMPTION'
    OVERTIME = 'OVERTIME'


class StatsSource(str, Enum):
    TRACKED = 'TRACKED'
    LEGACY = 'LEGACY'


class AdjustAction(str, Enum):
    ADD = 'ADD'
    SUBTRACT = 'SUBTRACT'
