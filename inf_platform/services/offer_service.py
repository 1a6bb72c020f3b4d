"""
Offer Service - public catalog and company-side offer management.

Students only ever see active offers of verified companies.
"""

from typing import List, Optional, Tuple

from inf_platform.db.postgres import execute_raw_sql

OFFER_COLUMNS = """
    o.id, o.company_id, c.company_name, c.is_verified AS company_verified, o.event_id,
    o.title, o.description, o.interest_tag, o.location, o.department, o.is_active, o.created_at
"""

EDITABLE_FIELDS = ("title", "description", "interest_tag", "location", "department", "event_id")


def _public_filters(search: Optional[str], interest_tag: Optional[str]) -> Tuple[str, dict]:
    conditions = ["o.is_active = TRUE", "c.is_verified = TRUE"]
    params = {}

    if search:
        conditions.append(
            "(o.title ILIKE :search OR o.description ILIKE :search OR c.company_name ILIKE :search)"
        )
        params["search"] = f"%{search}%"

    if interest_tag:
        conditions.append("o.interest_tag = :interest_tag")
        params["interest_tag"] = interest_tag

    return " AND ".join(conditions), params


def list_public_offers(search: Optional[str] = None, interest_tag: Optional[str] = None,
                       limit: int = 50, offset: int = 0) -> List[dict]:
    """Active offers of verified companies, newest first."""
    where, params = _public_filters(search, interest_tag)
    sql = f"""
        SELECT {OFFER_COLUMNS}
        FROM offers o
        JOIN companies c ON c.id = o.company_id
        WHERE {where}
        ORDER BY o.created_at DESC
        LIMIT :limit OFFSET :offset
    """
    return execute_raw_sql(sql, {**params, "limit": limit, "offset": offset})


def count_public_offers(search: Optional[str] = None, interest_tag: Optional[str] = None) -> int:
    """Number of matches across all pages."""
    where, params = _public_filters(search, interest_tag)
    rows = execute_raw_sql(
        f"""
        SELECT COUNT(*)::INTEGER AS total
        FROM offers o
        JOIN companies c ON c.id = o.company_id
        WHERE {where}
        """,
        params,
    )
    return rows[0]["total"] if rows else 0


def get_offer(offer_id: str) -> Optional[dict]:
    rows = execute_raw_sql(
        f"""
        SELECT {OFFER_COLUMNS}
        FROM offers o
        JOIN companies c ON c.id = o.company_id
        WHERE o.id = :offer_id
        """,
        {"offer_id": str(offer_id)},
    )
    return rows[0] if rows else None


def is_public(offer: Optional[dict]) -> bool:
    return bool(offer and offer["is_active"] and offer["company_verified"])


def get_public_offer(offer_id: str) -> Optional[dict]:
    """The offer as students see it: None unless active and from a verified company."""
    offer = get_offer(offer_id)
    return offer if is_public(offer) else None


def list_verified_companies() -> List[dict]:
    return execute_raw_sql(
        """
        SELECT c.id, c.company_name, c.industry, c.description, c.website, c.is_verified,
               COUNT(o.id) FILTER (WHERE o.is_active)::INTEGER AS active_offers
        FROM companies c
        LEFT JOIN offers o ON o.company_id = c.id
        WHERE c.is_verified = TRUE
        GROUP BY c.id
        ORDER BY c.company_name
        """
    )


# ============================================================
# COMPANY SIDE
# ============================================================

def list_company_offers(company_id: str) -> List[dict]:
    return execute_raw_sql(
        f"""
        SELECT {OFFER_COLUMNS}
        FROM offers o
        JOIN companies c ON c.id = o.company_id
        WHERE o.company_id = :company_id
        ORDER BY o.created_at DESC
        """,
        {"company_id": str(company_id)},
    )


def create_offer(company_id: str, data: dict) -> dict:
    rows = execute_raw_sql(
        """
        INSERT INTO offers (company_id, event_id, title, description, interest_tag, location, department)
        VALUES (:company_id, :event_id, :title, :description, :interest_tag, :location, :department)
        RETURNING id
        """,
        {
            "company_id": str(company_id),
            "event_id": str(data["event_id"]) if data.get("event_id") else None,
            "title": data["title"],
            "description": data.get("description"),
            "interest_tag": data.get("interest_tag"),
            "location": data.get("location"),
            "department": data.get("department"),
        },
    )
    return get_offer(rows[0]["id"])


def update_offer(company_id: str, offer_id: str, updates: dict) -> Optional[dict]:
    """Apply only the provided fields; None when the offer is not the company's."""
    fields = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS and v is not None}
    if not fields:
        offer = get_offer(offer_id)
        return offer if offer and str(offer["company_id"]) == str(company_id) else None

    if "event_id" in fields:
        fields["event_id"] = str(fields["event_id"])

    assignments = ", ".join(f"{key} = :{key}" for key in fields)
    rows = execute_raw_sql(
        f"""
        UPDATE offers SET {assignments}, updated_at = NOW()
        WHERE id = :offer_id AND company_id = :company_id
        RETURNING id
        """,
        {**fields, "offer_id": str(offer_id), "company_id": str(company_id)},
    )
    return get_offer(offer_id) if rows else None


def toggle_offer(company_id: str, offer_id: str) -> Optional[dict]:
    rows = execute_raw_sql(
        """
        UPDATE offers SET is_active = NOT is_active, updated_at = NOW()
        WHERE id = :offer_id AND company_id = :company_id
        RETURNING id
        """,
        {"offer_id": str(offer_id), "company_id": str(company_id)},
    )
    return get_offer(offer_id) if rows else None


def delete_offer(company_id: str, offer_id: str) -> bool:
    rows = execute_raw_sql(
        "DELETE FROM offers WHERE id = :offer_id AND company_id = :company_id RETURNING id",
        {"offer_id": str(offer_id), "company_id": str(company_id)},
    )
    return bool(rows)
