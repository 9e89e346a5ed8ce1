#!/usr/bin/env python3
"""
Точка входа: текстовый файл (строки от PDF-to-text) → OrderPayload JSON.

Использование:
    # Автоопределение шаблона перевозчика
    python scripts/parse_order.py path/to/FUSM2024061234.txt

    # Явный шаблон
    python scripts/parse_order.py path/to/booking.txt --template ziegler

    # Полный отчёт пайплайна (provenance + промежуточные этапы)
    python scripts/parse_order.py path/to/booking.txt --debug
"""

import sys
import argparse
import json
from pathlib import Path

# Добавляем корень проекта в путь
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from loguru import logger

from config.settings import LOG_LEVEL, validate_config
from freight_parser.domain.exceptions import ParsingError
from freight_parser.strategies import StrategyFactory


def main() -> int:
    parser = argparse.ArgumentParser(description="Извлечение заявки на перевозку из текста документа")
    parser.add_argument("input", type=Path, help="Текстовый файл, одна строка документа на строку")
    parser.add_argument("--template", help="Имя шаблона (transalliance, ziegler, generic)")
    parser.add_argument("--attachment", help="Имя исходного PDF (по умолчанию имя входного файла с .pdf)")
    parser.add_argument("--debug", action="store_true", help="Вывести полный PipelineResult")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Уровень логирования loguru")
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    try:
        validate_config()
    except ValueError as e:
        logger.error(f"[CLI] Некорректная конфигурация: {e}")
        return 1

    if not args.input.exists():
        logger.error(f"[CLI] Файл не найден: {args.input}")
        return 1

    lines = args.input.read_text(encoding="utf-8").splitlines()
    attachment = args.attachment or f"{args.input.stem}.pdf"

    factory = StrategyFactory()
    try:
        strategy = factory.get(args.template, lines=lines)
        result = strategy.process(lines, attachment)
    except ParsingError as e:
        logger.error(f"[CLI] {e}")
        return 2

    output = result.to_dict() if args.debug else result.payload.to_schema_dict()
    print(json.dumps(output, ensure_ascii=False, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
