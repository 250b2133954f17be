"""Daily report types and the file naming convention used for uploads."""
from datetime import datetime
from enum import Enum
from typing import Optional


class ReportType(str, Enum):
    """Report categories offered by the upload form."""
    ORDER = 'Sipariş tutar ve tonaj raporu'
    OFFER = 'Teklif raporu'
    GUARANTEE = 'Gayri nakdi kullanım raporu'
    ARGE = 'Günlük arge raporu'
    SHIPMENT = 'Sevkiyat raporu'
    CASH_FLOW = 'Nakit akışı'
    OTHER = 'Diğer'

    @classmethod
    def parse(cls, value: str) -> "ReportType":
        """Accept either the member name (`SHIPMENT`) or the display value."""
        value = value.strip()
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown report type: {value}") from None


def format_report_file_name(
    original_name: str,
    report_type: ReportType,
    custom_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Build `<dd-MM-yyyy>_<report name>_<HH.mm.ss><ext>`.

    The extension is everything from the last `.` of `original_name` (empty if it has none).
    `OTHER` reports take their name from `custom_name`, which must not be blank.
    """
    now = now or datetime.now()
    report_name = report_type.value
    if report_type is ReportType.OTHER:
        if not custom_name or not custom_name.strip():
            raise ValueError("A custom report name is required for 'Diğer' reports")
        report_name = custom_name.strip()

    extension = original_name[original_name.rfind("."):] if "." in original_name else ""
    return f"{now:%d-%m-%Y}_{report_name}_{now:%H.%M.%S}{extension}"
