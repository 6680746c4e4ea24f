from smartwords.models.db.attempt import Attempt
from smartwords.models.db.auth_session import AuthSession
from smartwords.models.db.event_log import EventLog
from smartwords.models.db.exercise_session import ExerciseSession
from smartwords.models.db.generation_run import GenerationRun
from smartwords.models.db.sentence import Sentence
from smartwords.models.db.user import User
from smartwords.models.db.vocabulary_set import VocabularySet
from smartwords.models.db.word import Word

__all__ = [
    "Attempt",
    "AuthSession",
    "EventLog",
    "ExerciseSession",
    "GenerationRun",
    "Sentence",
    "User",
    "VocabularySet",
    "Word",
]
