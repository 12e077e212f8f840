"""
Display strings and locale-aware formatting for generated reports.

Reports can be written in any language the LLM supports, but the surrounding
labels, generic error messages, and date/number formatting are only localized
for the languages listed in `LOCALES`. Anything else falls back to English.
"""

import datetime
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

_ARABIC_INDIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")


@dataclass(frozen=True)
class LocaleSpec:
    """Formatting rules and UI labels for one display language."""

    code: str
    direction: str
    date_format: str
    native_digits: bool = False
    labels: Dict[str, str] = field(default_factory=dict)


_ENGLISH_LABELS = {
    "generation_failed": "Failed to call the report generation API.",
    "credential_missing": (
        "Please select a valid API key from a paid (billing-enabled) project "
        "to run grounded search."
    ),
    "external_source": "External source",
    "summary": "Executive summary",
    "charts": "Charts",
    "table": "Key figures",
    "methodology": "Methodology",
    "limitations": "Limitations",
    "sources": "Sources",
    "top_stores": "Top stores",
    "top_listings": "Top listings",
    "top_keywords": "Top keywords",
    "shop": "Shop",
    "price": "Price",
    "rating": "Rating",
    "volume": "Volume",
    "competition": "Competition",
    "category": "Category",
    "print": "Print / Save as PDF",
    "download": "Download HTML",
    "no_report": "No report has been generated yet.",
    "value": "Value",
}

_ARABIC_LABELS = {
    "generation_failed": "فشل في استدعاء واجهة برمجة التطبيقات.",
    "credential_missing": "يرجى اختيار مفتاح API صالح (Paid Project) لتشغيل البحث المتقدم.",
    "external_source": "مصدر خارجي",
    "summary": "الملخص التنفيذي",
    "charts": "الرسوم البيانية",
    "table": "تفاصيل المؤشرات الرقمية",
    "methodology": "منهجية إعداد التقرير",
    "limitations": "حدود التقرير",
    "sources": "المصادر والبيانات المرجعية",
    "top_stores": "أبرز المتاجر",
    "top_listings": "أبرز المنتجات",
    "top_keywords": "أبرز الكلمات المفتاحية",
    "shop": "المتجر",
    "price": "السعر",
    "rating": "التقييم",
    "volume": "حجم البحث",
    "competition": "المنافسة",
    "category": "الفئة",
    "print": "طباعة / حفظ PDF",
    "download": "تنزيل HTML",
    "no_report": "لم يتم إنشاء أي تقرير بعد.",
    "value": "القيمة",
}

LOCALES: Dict[str, LocaleSpec] = {
    "english": LocaleSpec(
        code="en", direction="ltr", date_format="%m/%d/%Y", labels=_ENGLISH_LABELS
    ),
    "arabic": LocaleSpec(
        code="ar",
        direction="rtl",
        date_format="%d/%m/%Y",
        native_digits=True,
        labels=_ARABIC_LABELS,
    ),
}

DEFAULT_LOCALE = LOCALES["english"]


def get_locale(language: Optional[str]) -> LocaleSpec:
    """Resolves a free-text language name ("Arabic", "arabic ") to its locale."""
    if not language:
        return DEFAULT_LOCALE
    return LOCALES.get(language.strip().lower(), DEFAULT_LOCALE)


def get_label(language: Optional[str], key: str) -> str:
    """Returns a UI label in `language`, falling back to English."""
    return get_locale(language).labels.get(key) or _ENGLISH_LABELS[key]


def localize_digits(text: str, language: Optional[str]) -> str:
    if get_locale(language).native_digits:
        return text.translate(_ARABIC_INDIC_DIGITS)
    return text


def format_display_date(day: datetime.date, language: Optional[str]) -> str:
    """Formats a date the way the report's display locale writes it."""
    locale = get_locale(language)
    return localize_digits(day.strftime(locale.date_format), language)


def format_number(value: Union[int, float], language: Optional[str]) -> str:
    """Groups thousands and trims float noise, e.g. 12500.0 -> '12,500'."""
    if isinstance(value, float) and not value.is_integer():
        text = f"{value:,.2f}".rstrip("0").rstrip(".")
    else:
        text = f"{int(value):,}"
    return localize_digits(text, language)
