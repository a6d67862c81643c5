"""Company data report and CSV export for extraction results."""

import csv
import io
from typing import Any, Iterable

from app.models import CompanyData

EMPLOYEE_RANGES = (
    ("startup (1-50)", 50),
    ("small (51-200)", 200),
    ("medium (201-1000)", 1000),
    ("large (1001-5000)", 5000),
)
ENTERPRISE_RANGE = "enterprise (5000+)"
UNKNOWN = "unknown"


def _employee_range(employees: int | None) -> str:
    if employees is None:
        return UNKNOWN
    for label, upper in EMPLOYEE_RANGES:
        if employees <= upper:
            return label
    return ENTERPRISE_RANGE


def build_company_report(companies: list[CompanyData]) -> dict[str, Any]:
    """
    Summarize a batch of extracted companies.

    Args:
        companies: Records from one or more extraction steps.

    Returns:
        Dict with totals, industry/location distributions, employee size
        buckets, website coverage and profile completeness.
    """
    employee_ranges = {label: 0 for label, _ in EMPLOYEE_RANGES}
    employee_ranges[ENTERPRISE_RANGE] = 0
    employee_ranges[UNKNOWN] = 0
    industries: dict[str, int] = {}
    locations: dict[str, int] = {}
    website_status = {"hasWebsite": 0, "noWebsite": 0}
    quality = {"completeProfiles": 0, "partialProfiles": 0, "incompleteProfiles": 0}

    for company in companies:
        if company.industry:
            key = company.industry.lower()
            industries[key] = industries.get(key, 0) + 1
        if company.location:
            key = company.location.lower()
            locations[key] = locations.get(key, 0) + 1

        employee_ranges[_employee_range(company.employees)] += 1

        has_website = bool(company.website and company.website.startswith("http"))
        website_status["hasWebsite" if has_website else "noWebsite"] += 1

        filled = sum(
            1
            for value in (company.name, has_website, company.employees, company.industry, company.location)
            if value
        )
        if filled >= 4:
            quality["completeProfiles"] += 1
        elif filled >= 2:
            quality["partialProfiles"] += 1
        else:
            quality["incompleteProfiles"] += 1

    return {
        "totalCompanies": len(companies),
        "industryDistribution": industries,
        "employeeRanges": employee_ranges,
        "websiteStatus": website_status,
        "locationDistribution": locations,
        "dataQuality": quality,
    }


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    if isinstance(value, dict):
        return "; ".join(f"{k}={v}" for k, v in value.items())
    return str(value)


def records_to_csv(records: Iterable[dict[str, Any]]) -> str:
    """
    Render flat records as CSV with every value quoted.

    The header is the union of record keys in first-seen order.

    Args:
        records: Plain key-value records such as dumped CompanyData.

    Returns:
        CSV text, empty when there are no records.
    """
    rows = list(records)
    if not rows:
        return ""
    fieldnames: list[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)

    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=fieldnames, quoting=csv.QUOTE_ALL, lineterminator="\n"
    )
    writer.writeheader()
    for row in rows:
        writer.writerow({key: _cell(row.get(key)) for key in fieldnames})
    return buffer.getvalue()


def companies_to_csv(companies: list[CompanyData]) -> str:
    return records_to_csv(
        company.model_dump(exclude={"additional_data"}) for company in companies
    )
