"""
Config Loader для шаблонов перевозчиков.

ЦКП: Загрузка единой модели TemplateConfig для шаблона.

Архитектурный принцип:
- Единая модель TemplateConfig для всех перевозчиков
- Общие списки ключевых слов живут в base.yaml
- <template>/template.yaml наследует списки через $extends
- Новый перевозчик = новый YAML + тонкая стратегия
"""

import re
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional
from loguru import logger

from config.settings import (
    CUSTOMER_WINDOW_SIZE,
    DEFAULT_CURRENCY,
    HEURISTIC_WINDOW_SIZE,
    MAX_STOPS_PER_ROLE,
    STOP_WINDOW_SIZE,
)
from ..domain.exceptions import TemplateConfigurationError, TemplateNotFoundError


@dataclass
class DetectionConfig:
    """
    Правила опознания шаблона (matches_template).

    - hard_markers: фразы перевозчика, нужно min_hard_hits строк с ними
    - soft_marker_groups: группы слов, +1 за каждую строку с словом группы
    - required_markers / any_markers: проверяются в первых head_lines строках
    """
    hard_markers: List[str] = field(default_factory=list)
    min_hard_hits: int = 0
    soft_marker_groups: List[List[str]] = field(default_factory=list)
    min_soft_score: int = 0
    required_markers: List[str] = field(default_factory=list)
    any_markers: List[str] = field(default_factory=list)
    head_lines: Optional[int] = None
    always: bool = False


@dataclass
class NoteRule:
    """Regex → текст заметки. {0} - вся строка, {1} - первая группа."""
    pattern: str
    note: str = "{0}"

    def apply(self, line: str, company: str = "") -> Optional[str]:
        """Текст заметки, если строка подходит под правило."""
        match = re.search(self.pattern, line, re.IGNORECASE)
        if not match:
            return None
        groups = [g or "" for g in match.groups()]
        return self.note.format(line, *groups, company=company).strip() or None


@dataclass
class StopConfig:
    """Конфигурация Stage 4: Stops."""
    loading_markers: List[str] = field(default_factory=list)
    delivery_markers: List[str] = field(default_factory=list)
    marker_mode: str = "prefix"
    window: int = STOP_WINDOW_SIZE
    strict: bool = True
    max_stops: int = MAX_STOPS_PER_ROLE
    section_end_markers: List[str] = field(default_factory=list)
    company_strip_suffixes: List[str] = field(default_factory=list)
    note_rules: List[NoteRule] = field(default_factory=list)
    heuristic_fallback: bool = True
    heuristic_window: int = HEURISTIC_WINDOW_SIZE


@dataclass
class ReferencePattern:
    """Паттерн номера заказа с приоритетом (меньше = важнее)."""
    pattern: str
    priority: int
    group: int = 1
    strip: str = ""


@dataclass
class CustomerConfig:
    """Конфигурация Stage 3: Customer."""
    markers: List[str] = field(default_factory=list)
    window: int = CUSTOMER_WINDOW_SIZE
    stop_keywords: List[str] = field(default_factory=list)
    defaults: Dict[str, str] = field(default_factory=dict)
    comment_rules: List[NoteRule] = field(default_factory=list)


@dataclass
class CommentConfig:
    """Конфигурация Stage 6: Comment."""
    keywords: List[str] = field(default_factory=list)
    section_start: List[str] = field(default_factory=list)
    section_end: List[str] = field(default_factory=list)
    separator: str = " | "
    rules: List[NoteRule] = field(default_factory=list)
    rules_separator: str = ". "
    reference_prefix: bool = False


@dataclass
class CargoPlaceholder:
    """Груз-заглушка, если CargoExtractor ничего не нашёл."""
    title: str = "General cargo"
    package_count: Optional[int] = 1


@dataclass
class TemplateConfig:
    """
    Единая конфигурация шаблона перевозчика.

    Содержит данные для всех стадий пайплайна.
    """
    template: str
    name: str
    detection: DetectionConfig
    stops: StopConfig
    customer: CustomerConfig
    comment: CommentConfig
    cargo_placeholder: CargoPlaceholder
    reference_patterns: List[ReferencePattern] = field(default_factory=list)
    filename_reference_pattern: Optional[str] = None
    known_companies: List[str] = field(default_factory=list)
    instruction_keywords: List[str] = field(default_factory=list)
    non_address_hints: List[str] = field(default_factory=list)
    price_keywords: List[str] = field(default_factory=list)
    default_currency: str = DEFAULT_CURRENCY

    def to_dict(self) -> dict:
        return {
            "template": self.template,
            "name": self.name,
            "reference_patterns": len(self.reference_patterns),
            "loading_markers": self.stops.loading_markers,
            "delivery_markers": self.stops.delivery_markers,
            "marker_mode": self.stops.marker_mode,
        }


class TemplateConfigLoader:
    """
    Загрузчик конфигураций шаблонов.

    Пример:
        config = TemplateConfigLoader().load("ziegler")
    """

    _cache: ClassVar[Dict[str, TemplateConfig]] = {}

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Args:
            config_dir: Директория шаблонов (по умолчанию рядом с модулем)
        """
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent

    def load(self, template: str) -> TemplateConfig:
        """Загружает TemplateConfig (с кешем)."""
        cache_key = f"{self.config_dir}:{template}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        config = self._load_template_yaml(self.config_dir, template)
        self._cache[cache_key] = config

        logger.debug(
            f"[ConfigLoader] Загружен TemplateConfig '{template}': "
            f"{len(config.reference_patterns)} reference_patterns, "
            f"{len(config.stops.loading_markers)}/{len(config.stops.delivery_markers)} маркеров остановок"
        )
        return config

    def available_templates(self) -> List[str]:
        """Имена шаблонов, для которых есть template.yaml."""
        return sorted(p.parent.name for p in self.config_dir.glob("*/template.yaml"))

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()

    @classmethod
    def _load_base_config(cls, config_dir: Path) -> dict:
        """Загружает общие списки из base.yaml."""
        base_file = config_dir / "base.yaml"

        if not base_file.exists():
            logger.warning(f"[ConfigLoader] base.yaml не найден: {base_file}")
            return {}

        return cls._read_yaml(base_file)

    @staticmethod
    def _read_yaml(path: Path) -> dict:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise TemplateConfigurationError(
                f"Некорректный YAML: {path}", component="ConfigLoader", original_error=e
            )
        if not isinstance(data, dict):
            raise TemplateConfigurationError(f"Ожидался словарь в {path}", component="ConfigLoader")
        return data

    @classmethod
    def _resolve_extends(cls, value: Any, base_config: dict) -> Any:
        """
        Наследование списков через $extends.

        Форматы элемента списка:
        - строка "$extends: key"
        - словарь {"$extends": "key"}
        Прочие элементы (строки, словари паттернов) копируются как есть.
        """
        if not isinstance(value, list):
            return value

        result = []
        for item in value:
            extended_key = None

            if isinstance(item, str) and item.startswith("$extends:"):
                extended_key = item.split(":", 1)[1].strip()
            elif isinstance(item, dict) and "$extends" in item:
                extended_key = item["$extends"]

            if extended_key is None:
                result.append(item)
                continue

            extended = base_config.get(extended_key, [])
            if not extended:
                logger.warning(f"[ConfigLoader] Ключ '{extended_key}' для $extends не найден в base.yaml")
            else:
                logger.trace(f"[ConfigLoader] Наследуем {len(extended)} элементов из '{extended_key}'")
            result.extend(cls._resolve_extends(list(extended), base_config))

        return result

    @classmethod
    def _load_template_yaml(cls, config_dir: Path, template: str) -> TemplateConfig:
        """Загружает шаблон из <config_dir>/<template>/template.yaml."""
        base_config = cls._load_base_config(config_dir)

        config_file = config_dir / template / "template.yaml"
        if not config_file.exists():
            raise TemplateNotFoundError(
                f"Конфиг шаблона '{template}' не найден: {config_file}", component="ConfigLoader"
            )

        data = cls._read_yaml(config_file)

        for required in ("template", "name"):
            if required not in data:
                raise TemplateConfigurationError(
                    f"Отсутствует {required} в {config_file}", component="ConfigLoader"
                )

        def listed(section: dict, key: str) -> list:
            return cls._resolve_extends(section.get(key) or [], base_config)

        detection_data = data.get("detection") or {}
        detection = DetectionConfig(
            hard_markers=listed(detection_data, "hard_markers"),
            min_hard_hits=int(detection_data.get("min_hard_hits", 0)),
            soft_marker_groups=[
                cls._resolve_extends(group, base_config)
                for group in detection_data.get("soft_marker_groups") or []
            ],
            min_soft_score=int(detection_data.get("min_soft_score", 0)),
            required_markers=listed(detection_data, "required_markers"),
            any_markers=listed(detection_data, "any_markers"),
            head_lines=detection_data.get("head_lines"),
            always=bool(detection_data.get("always", False)),
        )

        stops_data = data.get("stops") or {}
        stops = StopConfig(
            loading_markers=listed(stops_data, "loading_markers"),
            delivery_markers=listed(stops_data, "delivery_markers"),
            marker_mode=stops_data.get("marker_mode", "prefix"),
            window=int(stops_data.get("window", STOP_WINDOW_SIZE)),
            strict=bool(stops_data.get("strict", True)),
            max_stops=int(stops_data.get("max_stops", MAX_STOPS_PER_ROLE)),
            section_end_markers=listed(stops_data, "section_end_markers"),
            company_strip_suffixes=listed(stops_data, "company_strip_suffixes"),
            note_rules=cls._note_rules(listed(stops_data, "note_rules")),
            heuristic_fallback=bool(stops_data.get("heuristic_fallback", True)),
            heuristic_window=int(stops_data.get("heuristic_window", HEURISTIC_WINDOW_SIZE)),
        )
        if stops.marker_mode not in ("prefix", "substring"):
            raise TemplateConfigurationError(
                f"marker_mode должен быть prefix|substring, получено '{stops.marker_mode}'",
                component="ConfigLoader",
            )
        if stops.heuristic_window < 2:
            raise TemplateConfigurationError(
                f"heuristic_window должен быть не меньше 2, получено {stops.heuristic_window}",
                component="ConfigLoader",
            )

        customer_data = data.get("customer") or {}
        customer = CustomerConfig(
            markers=listed(customer_data, "markers"),
            window=int(customer_data.get("window", CUSTOMER_WINDOW_SIZE)),
            stop_keywords=listed(customer_data, "stop_keywords"),
            defaults=dict(customer_data.get("defaults") or {}),
            comment_rules=cls._note_rules(listed(customer_data, "comment_rules")),
        )

        comment_data = data.get("comment") or {}
        comment = CommentConfig(
            keywords=listed(comment_data, "keywords"),
            section_start=listed(comment_data, "section_start"),
            section_end=listed(comment_data, "section_end"),
            separator=comment_data.get("separator", " | "),
            rules=cls._note_rules(listed(comment_data, "rules")),
            rules_separator=comment_data.get("rules_separator", ". "),
            reference_prefix=bool(comment_data.get("reference_prefix", False)),
        )

        placeholder_data = data.get("cargo_placeholder") or {}
        cargo_placeholder = CargoPlaceholder(
            title=placeholder_data.get("title", "General cargo"),
            package_count=placeholder_data.get("package_count"),
        )

        reference_patterns = []
        for item in cls._resolve_extends(data.get("reference_patterns") or [], base_config):
            if not isinstance(item, dict) or "pattern" not in item or "priority" not in item:
                raise TemplateConfigurationError(
                    f"reference_patterns: нужен pattern и priority в {config_file}", component="ConfigLoader"
                )
            reference_patterns.append(ReferencePattern(
                pattern=item["pattern"],
                priority=int(item["priority"]),
                group=int(item.get("group", 1)),
                strip=item.get("strip", ""),
            ))

        return TemplateConfig(
            template=data["template"],
            name=data["name"],
            detection=detection,
            stops=stops,
            customer=customer,
            comment=comment,
            cargo_placeholder=cargo_placeholder,
            reference_patterns=reference_patterns,
            filename_reference_pattern=data.get("filename_reference_pattern"),
            known_companies=cls._resolve_extends(data.get("known_companies") or [], base_config),
            instruction_keywords=cls._resolve_extends(data.get("instruction_keywords") or [], base_config),
            non_address_hints=cls._resolve_extends(data.get("non_address_hints") or [], base_config),
            price_keywords=cls._resolve_extends(data.get("price_keywords") or [], base_config),
            default_currency=data.get("default_currency", DEFAULT_CURRENCY),
        )

    @staticmethod
    def _note_rules(items: list) -> List[NoteRule]:
        rules = []
        for item in items:
            if isinstance(item, dict) and "pattern" in item:
                rules.append(NoteRule(pattern=item["pattern"], note=item.get("note", "{0}")))
            elif isinstance(item, str):
                rules.append(NoteRule(pattern=item))
        return rules
