"""
Тесты процессора одного документа.

Проверяют формат сгенерированного текста, диапазон задержек и реакцию
на токен отмены.
"""

import asyncio
import random
import re
import time

import pytest

from ocr_mock.errors import ItemTimeout
from ocr_mock.services.cancellation import CancellationToken
from ocr_mock.services.item_processor import DOCUMENT_PHRASES, FIELD_WORDS, ItemProcessor

TEXT_PATTERN = re.compile(
    r"^(?P<phrase>{phrases})(?: (?P<field>{fields}) (?P<number>\d{{4}}))?$".format(
        phrases="|".join(re.escape(p) for p in DOCUMENT_PHRASES),
        fields="|".join(FIELD_WORDS),
    )
)


def test_corpus_sizes():
    assert len(DOCUMENT_PHRASES) == 10
    assert len(FIELD_WORDS) == 7


def test_synthesized_text_matches_format():
    processor = ItemProcessor(rng=random.Random(1))

    for _ in range(200):
        match = TEXT_PATTERN.match(processor.synthesize_text())
        assert match is not None
        if match.group("number"):
            assert 1000 <= int(match.group("number")) <= 9999


def test_suffix_probability_bounds():
    never = ItemProcessor(extra_word_probability=0.0, rng=random.Random(2))
    always = ItemProcessor(extra_word_probability=1.0, rng=random.Random(3))

    for _ in range(50):
        assert never.synthesize_text() in DOCUMENT_PHRASES
        assert TEXT_PATTERN.match(always.synthesize_text()).group("field")


def test_default_delay_range():
    processor = ItemProcessor(rng=random.Random(4))
    delays = [processor.pick_delay() for _ in range(500)]

    assert all(1.0 <= d <= 3.999 for d in delays)


def test_invalid_delay_range():
    with pytest.raises(ValueError):
        ItemProcessor(min_delay_ms=100, max_delay_ms=50)


def test_process_returns_text(fast_processor):
    async def scenario():
        return await fast_processor.process(CancellationToken(), "k1", "http://x")

    result = asyncio.run(scenario())
    assert result.key == "k1"
    assert result.status_code == 200
    assert TEXT_PATTERN.match(result.text)
    assert result.error is None


def test_process_interrupted_by_token(slow_processor):
    async def scenario():
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel, "deadline exceeded")
        return await slow_processor.process(token, "k1", "http://x")

    start = time.perf_counter()
    with pytest.raises(ItemTimeout) as exc_info:
        asyncio.run(scenario())

    assert time.perf_counter() - start < 1.0
    result = exc_info.value.result
    assert result.key == "k1"
    assert result.status_code == 408
    assert result.text == ""
    assert result.error == "processing cancelled due to timeout"


def test_process_with_cancelled_token(slow_processor):
    async def scenario():
        token = CancellationToken()
        token.cancel()
        return await slow_processor.process(token, "k1", "http://x")

    with pytest.raises(ItemTimeout):
        asyncio.run(scenario())
