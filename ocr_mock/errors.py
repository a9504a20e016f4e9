"""
Исключения пайплайна обработки.

Ошибки валидации входных данных здесь не описаны: их поднимает pydantic
(ValidationError), а отвечает на них слой API.
"""

from typing import Optional

from ocr_mock.schemas import RecognitionResult


class ItemProcessingError(Exception):
    """
    Ошибка обработки одного элемента.

    В пакетном режиме превращается в результат 500 только для своего
    элемента, остальные продолжают работу.

    Attributes:
        key: ключ элемента
        result: готовый результат для ответа (если известен)
    """

    def __init__(
        self,
        key: str,
        message: str,
        result: Optional[RecognitionResult] = None,
    ):
        super().__init__(message)
        self.key = key
        self.result = result


class ItemTimeout(ItemProcessingError):
    """Токен отмены сработал раньше, чем завершилась обработка элемента."""

    def __init__(self, key: str, message: str = "processing cancelled due to timeout"):
        super().__init__(
            key,
            message,
            result=RecognitionResult.failure(key, 408, message),
        )
