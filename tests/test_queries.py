from datetime import datetime, timedelta

from bson import ObjectId

from database import create_document
from queries import BusinessQuery, build_filter, featured_businesses, list_businesses, pagination, public_businesses


def seed(db, count, **fields):
    start = datetime(2024, 1, 1)
    ids = []
    for i in range(count):
        doc = {"name": f"Shop {i + 1}", "businessName": f"Shop {i + 1}", "slug": f"shop-{ObjectId()}",
               "category": "Retail", "city": "Lahore", "status": "pending", "featured": False,
               "createdAt": start + timedelta(minutes=i)}
        doc.update(fields)
        ids.append(create_document(db, "businesses", doc))
    return ids


def test_limit_and_page_are_clamped():
    assert BusinessQuery(limit="500").limit == 100
    assert BusinessQuery(limit="0").limit == 1
    assert BusinessQuery(page="-3").page == 1
    assert BusinessQuery(page="abc", limit="abc").page == 1
    assert BusinessQuery().limit == 12


def test_exact_filters_and_reviewed():
    filt = build_filter(BusinessQuery(category="Bank", city="Karachi", status="approved", reviewed="not-reviewed"))
    assert filt == {"category": "Bank", "city": "Karachi", "status": "approved",
                    "reviewedBy": {"$exists": False}}
    assert build_filter(BusinessQuery(reviewed="reviewed"))["reviewedBy"] == {"$exists": True}


def test_search_is_escaped():
    filt = build_filter(BusinessQuery(q=" a.b "))
    assert {"name": {"$regex": r"a\.b", "$options": "i"}} in filt["$or"]


def test_creator_and_search_are_both_applied():
    user_id = str(ObjectId())
    filt = build_filter(BusinessQuery(createdBy=user_id, q="cafe"))
    creator, search = filt["$and"]
    assert creator == {"$or": [{"createdBy": ObjectId(user_id)}, {"createdBy": user_id}]}
    assert len(search["$or"]) == 6


def test_pagination():
    assert pagination(2, 10, 25) == {"page": 2, "limit": 10, "total": 25, "pages": 3}
    assert pagination(1, 12, 0)["pages"] == 0


def test_second_page_of_history(db):
    seed(db, 25)
    result = list_businesses(db, BusinessQuery(page=2, limit=10, history=True))
    names = [b["name"] for b in result["businesses"]]
    assert names == [f"Shop {n}" for n in range(15, 5, -1)]
    assert result["pagination"] == {"page": 2, "limit": 10, "total": 25, "pages": 3}


def test_default_view_orders_by_status_then_newest(db):
    seed(db, 2, status="rejected")
    seed(db, 2, status="approved")
    statuses = [b["status"] for b in list_businesses(db, BusinessQuery())["businesses"]]
    assert statuses == ["approved", "approved", "rejected", "rejected"]


def test_history_adds_creator_names(db):
    user_id = create_document(db, "users", {"name": "Aisha", "email": "aisha@example.com", "role": "user"})
    seed(db, 1, createdBy=ObjectId(user_id))
    seed(db, 1, createdBy=user_id)
    seed(db, 1)

    result = list_businesses(db, BusinessQuery(history=True))
    assert sorted(str(b["createdByName"]) for b in result["businesses"]) == ["Aisha", "Aisha", "None"]

    mine = list_businesses(db, BusinessQuery(createdBy=user_id))
    assert mine["pagination"]["total"] == 2


def test_filter_count_matches_items(db):
    seed(db, 3, city="Karachi")
    seed(db, 4)
    result = list_businesses(db, BusinessQuery(city="Karachi", q="shop"))
    assert len(result["businesses"]) == result["pagination"]["total"] == 3


def test_featured_lists_only_approved(db):
    seed(db, 2, status="approved", featured=True, featuredAt=datetime(2024, 3, 1))
    seed(db, 1, status="pending", featured=True, featuredAt=datetime(2024, 4, 1))
    seed(db, 1, status="approved")
    items = featured_businesses(db)
    assert len(items) == 2
    assert all(b["featured"] for b in items)


def test_public_listing_uses_legacy_names(db):
    seed(db, 1, status="approved", name="Canonical Only", businessName=None, contactPerson="Sana",
         websiteUrl="https://x.example", postalCode="54000")
    seed(db, 1, status="pending")
    result = public_businesses(db)
    assert result["pagination"]["total"] == 1
    listing = result["businesses"][0]
    assert listing["businessName"] == "Canonical Only"
    assert listing["contactPersonName"] == "Sana"
    assert listing["website"] == "https://x.example"
    assert listing["postalCode"] == "54000"


def test_public_listing_city_is_exact_case_insensitive(db):
    seed(db, 2, status="approved", city="Lahore")
    seed(db, 1, status="approved", city="Lahore Cantt")
    assert public_businesses(db, city="lahore")["pagination"]["total"] == 2
    assert public_businesses(db, search="shop", limit="2")["pagination"] == {
        "page": 1, "limit": 2, "total": 3, "pages": 2,
    }
