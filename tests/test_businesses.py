import pytest
from bson import ObjectId

from businesses import create_business, find_business, update_fields
from errors import NotFound, ValidationFailed
from payloads import FieldUpdate, LogoSource
from tests.helpers import PNG_DATA_URL, FakeImageHost, submission


def test_public_submission_is_pending(db, host):
    business = create_business(db, host, submission())
    assert business["status"] == "pending"
    assert business["source"] == "frontend"
    assert business["featured"] is False
    assert "createdBy" not in business
    assert business["slug"] == "joes-cafe"


def test_legacy_and_canonical_names_are_both_written(db, host):
    business = create_business(db, host, submission(contactPersonName="Joe"))
    stored = db["businesses"].find_one({"_id": ObjectId(business["id"])})
    assert stored["name"] == stored["businessName"] == "Joe's Café!!"
    assert stored["contactPerson"] == stored["contactPersonName"] == "Joe"
    assert stored["postalCode"] == stored["zipCode"] == "54000"
    assert "whatsapp" not in stored


def test_canonical_submission_reads_back_through_alias(db, host):
    fields = {"name": "Canonical Co"}
    business = create_business(db, host, submission(businessName="", **fields))
    assert business["businessName"] == "Canonical Co"


def test_admin_submission_is_approved(db, host, admin):
    business = create_business(db, host, submission(), admin)
    assert business["status"] == "approved"
    assert business["source"] == "admin"
    stored = db["businesses"].find_one({"_id": ObjectId(business["id"])})
    assert stored["createdBy"] == ObjectId(admin.id)


def test_regular_user_submission_stays_pending(db, host, member):
    business = create_business(db, host, submission(), member)
    assert business["status"] == "pending"
    assert business["source"] == "frontend"
    assert business["createdBy"] == member.id


def test_same_name_gets_suffixed_slug(db, host):
    first = create_business(db, host, submission())
    second = create_business(db, host, submission())
    assert (first["slug"], second["slug"]) == ("joes-cafe", "joes-cafe-1")


def test_creation_bumps_category_counters(db, host):
    create_business(db, host, submission())
    create_business(db, host, submission())
    doc = db["categories"].find_one({"slug": "restaurants"})
    assert doc["count"] == 2
    assert doc["subcategories"][0]["count"] == 2


def test_oversized_logo_is_rejected_before_any_write(db, host):
    oversized = "data:image/png;base64," + "A" * 2_500_000
    with pytest.raises(ValidationFailed) as exc:
        create_business(db, host, submission(logo_data_url=oversized))
    assert exc.value.details[0]["field"] == "logoDataUrl"
    assert db["businesses"].count_documents({}) == 0
    assert db["categories"].count_documents({}) == 0


def test_logo_and_field_errors_reported_together(db, host):
    with pytest.raises(ValidationFailed) as exc:
        create_business(db, host, submission(logo_data_url="nope", email=""))
    assert [d["field"] for d in exc.value.details] == ["email", "logoDataUrl"]


def test_hosted_logo_replaces_inline_data(db, host):
    business = create_business(db, host, submission(logo_data_url=PNG_DATA_URL))
    assert business["logoUrl"].startswith("https://")
    assert business["logoPublicId"]
    assert "logoDataUrl" not in business


def test_failed_upload_keeps_inline_data(db):
    business = create_business(db, FakeImageHost(fail=True), submission(logo_data_url=PNG_DATA_URL))
    assert business["logoDataUrl"] == PNG_DATA_URL
    assert "logoUrl" not in business


def test_find_business_by_id_slug_and_slug_as_id(db, host):
    business = create_business(db, host, submission())
    assert find_business(db, business_id=business["id"])["slug"] == "joes-cafe"
    assert find_business(db, slug="joes-cafe")["id"] == business["id"]
    assert find_business(db, business_id="joes-cafe")["id"] == business["id"]
    with pytest.raises(NotFound):
        find_business(db, slug="nobody")


def test_update_fields_writes_aliases_and_keeps_slug(db, host):
    business = create_business(db, host, submission())
    updated = update_fields(db, host, business["id"], FieldUpdate(fields={"businessName": "Joe's Bistro",
                                                                          "website": "https://joe.example"}))
    assert updated["name"] == updated["businessName"] == "Joe's Bistro"
    assert updated["websiteUrl"] == updated["website"] == "https://joe.example"
    assert updated["slug"] == "joes-cafe"


def test_update_fields_can_rename_slug(db, host):
    business = create_business(db, host, submission())
    updated = update_fields(db, host, business["id"], FieldUpdate(fields={"name": "Joe's Bistro"}, renameSlug=True))
    assert updated["slug"] == "joes-bistro"


def test_update_fields_revalidates_merged_record(db, host):
    business = create_business(db, host, submission())
    with pytest.raises(ValidationFailed) as exc:
        update_fields(db, host, business["id"], FieldUpdate(fields={"category": "Bank"}))
    assert [d["field"] for d in exc.value.details] == ["swiftCode", "branchCode", "cityDialingCode", "iban"]


def test_update_fields_swaps_inline_logo_for_hosted(db, host):
    business = create_business(db, FakeImageHost(configured=False), submission(logo_data_url=PNG_DATA_URL))
    assert business["logoDataUrl"] == PNG_DATA_URL
    updated = update_fields(db, host, business["id"], FieldUpdate(logo=LogoSource(data_url=PNG_DATA_URL)))
    assert updated["logoUrl"].startswith("https://")
    assert "logoDataUrl" not in updated


def test_update_fields_unknown_business(db, host):
    with pytest.raises(NotFound):
        update_fields(db, host, str(ObjectId()), FieldUpdate(fields={"city": "Multan"}))


def test_renaming_to_the_same_base_keeps_suffixed_slug(db, host):
    create_business(db, host, submission())
    second = create_business(db, host, submission())
    assert second["slug"] == "joes-cafe-1"
    updated = update_fields(db, host, second["id"], FieldUpdate(fields={"name": "Joe's Cafe"}, renameSlug=True))
    assert updated["slug"] == "joes-cafe-1"
