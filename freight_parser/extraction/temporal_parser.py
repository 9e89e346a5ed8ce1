"""
TemporalWindowParser - дата и временное окно остановки.

ЦКП: TimeWindow (datetime_from, datetime_to) или None.

Форматы даты: DD/MM/YYYY, DD.MM.YYYY, DD-MM-YYYY, YYYY-MM-DD, двузначный год.
Форматы времени:
- HH:MM-HH:MM, HH.MM-HH.MM, HH:MM to HH:MM
- HH:MM Time To: HH:MM
- HHMM-Hpm, 9am-2pm
- BOOKED-HH:MM, BOOKED FOR H:MM PM (только начало)
- одиночное HH:MM
"""

import re
from datetime import date, datetime, time
from typing import Optional, Sequence, Tuple
from loguru import logger

from config.settings import STOP_BACKWARD_DATE_WINDOW, TWO_DIGIT_YEAR_PIVOT
from contracts.order_payload_dto import TimeWindow


TimeRange = Tuple[Optional[time], Optional[time]]


class TemporalWindowParser:
    """
    Элемент-функция: строки → TimeWindow.
    """

    ISO_DATE_PATTERN = re.compile(r'\b(\d{4})-(\d{1,2})-(\d{1,2})\b')
    # Хвост ".00" после года - это диапазон времени 08.00-12.00, а не дата
    DMY_DATE_PATTERN = re.compile(r'(?<![\d.])(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4}|\d{2})(?!\d|[:.]\d)')

    BOOKED_PATTERN = re.compile(
        r'\bBOOKED\b\s*(?:FOR\s*)?[-:]?\s*(\d{1,2})[:.](\d{2})(?:\s*(AM|PM))?\b', re.IGNORECASE
    )
    RANGE_PATTERN = re.compile(
        r'(?<![\d:])(\d{1,2})[:.](\d{2})\s*(?:-|–|TIME\s+TO\s*:?|TO|UNTIL|TILL)\s*(\d{1,2})[:.](\d{2})(?![\d])',
        re.IGNORECASE,
    )
    MERIDIEM_RANGE_PATTERN = re.compile(
        r'(?<![\d:])(\d{1,2}):?(\d{2})?\s*(AM|PM)?\s*(?:-|–|TO)\s*(\d{1,2})(?::(\d{2}))?\s*(AM|PM)\b',
        re.IGNORECASE,
    )
    SINGLE_TIME_PATTERN = re.compile(r'(?<![\d:.])(\d{1,2}):(\d{2})(?![\d:])')
    SINGLE_MERIDIEM_PATTERN = re.compile(r'(?<![\d:])(\d{1,2})(?::(\d{2}))?\s*(AM|PM)\b', re.IGNORECASE)

    def __init__(self, year_pivot: int = TWO_DIGIT_YEAR_PIVOT):
        self.year_pivot = year_pivot

    # ------------------------------------------------------------------
    # Дата
    # ------------------------------------------------------------------
    def parse_date(self, text: Optional[str]) -> Optional[date]:
        """Первая валидная дата в строке."""
        if not text:
            return None

        for match in self.ISO_DATE_PATTERN.finditer(text):
            parsed = self._build_date(match.group(1), match.group(2), match.group(3))
            if parsed:
                return parsed

        for match in self.DMY_DATE_PATTERN.finditer(text):
            parsed = self._build_date(match.group(3), match.group(2), match.group(1))
            if parsed:
                return parsed

        return None

    def _build_date(self, year: str, month: str, day: str) -> Optional[date]:
        y = int(year)
        if len(year) == 2:
            y += 1900 if y >= self.year_pivot else 2000
        try:
            return date(y, int(month), int(day))
        except ValueError:
            logger.trace(f"[TemporalWindowParser] Некорректная дата: {day}/{month}/{year}")
            return None

    def strip_dates(self, text: str) -> str:
        """Удаляет из строки только валидные даты."""
        text = self.ISO_DATE_PATTERN.sub(
            lambda m: " " if self._build_date(m.group(1), m.group(2), m.group(3)) else m.group(0), text
        )
        return self.DMY_DATE_PATTERN.sub(
            lambda m: " " if self._build_date(m.group(3), m.group(2), m.group(1)) else m.group(0), text
        )

    # ------------------------------------------------------------------
    # Время
    # ------------------------------------------------------------------
    def parse_time_range(self, text: Optional[str]) -> TimeRange:
        """
        (начало, конец) в 24-часовом формате.

        Даты из строки удаляются перед поиском, чтобы 27.06 не стало временем.
        """
        if not text:
            return None, None
        text = self.strip_dates(text)

        match = self.BOOKED_PATTERN.search(text)
        if match:
            return self._build_time(match.group(1), match.group(2), match.group(3)), None

        match = self.RANGE_PATTERN.search(text)
        if match:
            start = self._build_time(match.group(1), match.group(2))
            end = self._build_time(match.group(3), match.group(4))
            if start:
                return start, end

        match = self.MERIDIEM_RANGE_PATTERN.search(text)
        if match:
            start = self._build_time(match.group(1), match.group(2), match.group(3))
            end = self._build_time(match.group(4), match.group(5), match.group(6))
            if start:
                return start, end

        match = self.SINGLE_TIME_PATTERN.search(text)
        if match:
            return self._build_time(match.group(1), match.group(2)), None

        match = self.SINGLE_MERIDIEM_PATTERN.search(text)
        if match:
            return self._build_time(match.group(1), match.group(2), match.group(3)), None

        return None, None

    @staticmethod
    def _build_time(hours: str, minutes: Optional[str], meridiem: Optional[str] = None) -> Optional[time]:
        h = int(hours)
        m = int(minutes) if minutes else 0
        if meridiem:
            meridiem = meridiem.upper()
            if h > 12:
                return None
            if meridiem == "PM" and h < 12:
                h += 12
            elif meridiem == "AM" and h == 12:
                h = 0
        if h > 23 or m > 59:
            return None
        return time(h, m)

    # ------------------------------------------------------------------
    # Окно
    # ------------------------------------------------------------------
    def has_date_or_time(self, text: Optional[str]) -> bool:
        if not text:
            return False
        if self.parse_date(text):
            return True
        return self.parse_time_range(text)[0] is not None

    def build_window(
        self,
        day: Optional[date],
        time_from: Optional[time] = None,
        time_to: Optional[time] = None,
    ) -> Optional[TimeWindow]:
        """
        TimeWindow из даты и времени.

        Только дата → начало дня. Без даты окна нет.
        """
        if day is None:
            return None
        start = datetime.combine(day, time_from or time(0, 0))
        end = datetime.combine(day, time_to) if time_to else None
        if end is not None and end < start:
            logger.trace(f"[TemporalWindowParser] Конец окна раньше начала: {start} → {end}")
            end = None
        return TimeWindow(datetime_from=start, datetime_to=end)

    def find_window(
        self,
        lines: Sequence[str],
        start: int,
        end: int,
        backward: int = STOP_BACKWARD_DATE_WINDOW,
    ) -> Optional[TimeWindow]:
        """
        Ищет дату/время в окне строк [start, end).

        Время без даты: дата ищется дальше вперёд по окну,
        затем не более `backward` строк назад от начала окна.
        """
        end = min(end, len(lines))
        found_date: Optional[date] = None
        found_times: TimeRange = (None, None)

        for i in range(max(start, 0), end):
            line_date = self.parse_date(lines[i])
            line_times = self.parse_time_range(lines[i])

            if line_date and found_date is None:
                found_date = line_date
                if line_times[0]:
                    found_times = line_times
            if found_times[0] is None and line_times[0]:
                found_times = line_times
            if found_date and found_times[0]:
                break

        if found_date is None and found_times[0] is not None:
            for i in range(start - 1, max(start - 1 - backward, -1), -1):
                found_date = self.parse_date(lines[i])
                if found_date:
                    logger.trace(f"[TemporalWindowParser] Дата найдена назад в строке {i}")
                    break

        return self.build_window(found_date, found_times[0], found_times[1])
