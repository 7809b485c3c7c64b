"""
Catálogo de preguntas en memoria, cargado una vez por pasada de evaluación.
"""

import logging

from app.models.question import Question, QuestionDefinition, QuestionType
from app.repositories.question_repository import QuestionRepository
from app.services.normalization import standardize_question_key

logger = logging.getLogger(__name__)


class QuestionCatalog:
    """
    Lookup de definiciones de pregunta por cualquiera de sus claves.

    Cada pregunta queda indexada por su _id, por su `type`, por el `type` en
    minúsculas y por la clave canónica del type ("topBatsman" -> "top-batsman").
    Los _id tienen prioridad sobre los alias de type.
    """

    def __init__(self, questions: list[Question], default_points: int = 10):
        self.default_points = default_points
        self._by_key: dict[str, QuestionDefinition] = {}

        definitions = [self._to_definition(q) for q in questions]

        for question, definition in zip(questions, definitions):
            self._by_key[question.id] = definition

        for question, definition in zip(questions, definitions):
            if question.type in (QuestionType.UNKNOWN, QuestionType.CUSTOM):
                continue
            type_value = question.type.value
            for alias in (type_value, type_value.lower(), standardize_question_key(type_value, "")):
                self._by_key.setdefault(alias, definition)

    @classmethod
    async def load(cls, repo: QuestionRepository, default_points: int = 10) -> "QuestionCatalog":
        questions = await repo.get_active()
        catalog = cls(questions, default_points)
        logger.info(f"Loaded {len(questions)} active questions ({len(catalog)} lookup keys)")
        return catalog

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: str) -> bool:
        return key in self._by_key

    def _to_definition(self, question: Question) -> QuestionDefinition:
        return QuestionDefinition(
            id=question.id,
            type=question.type,
            points=question.points or self.default_points,
            negative_points=question.negative_points or 0,
        )

    def lookup(self, standard_key: str, question_id: str) -> QuestionDefinition:
        """
        Busca la definición probando la clave canónica, el id crudo y el id
        en minúsculas. Si no aparece, devuelve una definición por defecto
        (default_points, tipo UNKNOWN) en vez de fallar.
        """
        for key in (standard_key, question_id, question_id.lower()):
            definition = self._by_key.get(key)
            if definition is not None:
                return definition

        logger.warning(
            f"⚠️ Question {question_id} not in catalog, scoring with "
            f"{self.default_points} points / exact match"
        )
        return QuestionDefinition(
            id=question_id,
            type=QuestionType.UNKNOWN,
            points=self.default_points,
            negative_points=0,
        )
