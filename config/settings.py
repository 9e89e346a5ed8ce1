"""
Настройки проекта Freight Order Parser.

Все пороги и дефолты движка извлечения собраны здесь.
Шаблон-специфичные значения живут в freight_parser/templates/*.yaml.
"""

import os
from pathlib import Path

# =============================================================================
# ПУТИ ПРОЕКТА
# =============================================================================
PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = PROJECT_ROOT / "freight_parser"
TEMPLATES_DIR = PACKAGE_DIR / "templates"
GAZETTEER_FILE = PACKAGE_DIR / "extraction" / "gazetteer.yaml"

# =============================================================================
# ЛОГИРОВАНИЕ
# =============================================================================
LOG_LEVEL = os.getenv("FREIGHT_PARSER_LOG_LEVEL", "INFO")

# =============================================================================
# ШАБЛОНЫ
# =============================================================================
# Шаблон, если ни один перевозчик не опознан
DEFAULT_TEMPLATE = "generic"

# =============================================================================
# ОБЯЗАТЕЛЬНЫЕ ПОЛЯ И ФОЛБЭКИ
# =============================================================================
DEFAULT_CURRENCY = "EUR"
REFERENCE_PLACEHOLDER = "UNKNOWN-REF"
DEFAULT_FREIGHT_PRICE = 0.0

# Валидация суммы фрахта
FREIGHT_AMOUNT_MIN = 0.01
FREIGHT_AMOUNT_MAX = 1000000.0

# Позиционный фолбэк референса: длина токена
REFERENCE_MIN_LENGTH = 6
REFERENCE_MAX_LENGTH = 16

# =============================================================================
# ОКНА ПОИСКА
# =============================================================================
STOP_WINDOW_SIZE = 8            # Строк после маркера остановки
HEURISTIC_WINDOW_SIZE = 6       # Строк после строки-компании без маркеров
STOP_BACKWARD_DATE_WINDOW = 3   # Строк назад при поиске даты
CUSTOMER_WINDOW_SIZE = 12       # Строк после строки заказчика
MAX_STOPS_PER_ROLE = 2          # Лимит остановок на роль (loading / delivery)

# =============================================================================
# ЭВРИСТИКИ СТРОК
# =============================================================================
INSTRUCTION_LINE_MAX_LENGTH = 180   # Длиннее = инструкция, не адрес
COMPANY_LINE_MAX_LENGTH = 90        # Длиннее = не название компании

# Двузначный год: >= pivot → 19xx, иначе 20xx
TWO_DIGIT_YEAR_PIVOT = 80


# =============================================================================
# ПРОВЕРКА КОНФИГУРАЦИИ
# =============================================================================
def validate_config():
    """Проверяет корректность конфигурации."""
    errors = []

    if not TEMPLATES_DIR.exists():
        errors.append(f"Директория шаблонов не найдена: {TEMPLATES_DIR}")

    if not GAZETTEER_FILE.exists():
        errors.append(f"Файл газеттира не найден: {GAZETTEER_FILE}")

    if not 0 <= TWO_DIGIT_YEAR_PIVOT <= 99:
        errors.append(f"TWO_DIGIT_YEAR_PIVOT вне диапазона 0..99: {TWO_DIGIT_YEAR_PIVOT}")

    if STOP_WINDOW_SIZE < 1 or HEURISTIC_WINDOW_SIZE < 1 or CUSTOMER_WINDOW_SIZE < 1:
        errors.append("Размер окна поиска должен быть положительным")

    if REFERENCE_MIN_LENGTH > REFERENCE_MAX_LENGTH:
        errors.append("REFERENCE_MIN_LENGTH больше REFERENCE_MAX_LENGTH")

    if errors:
        raise ValueError("\n".join(errors))

    return True
