from database import USERS, create_document
from errors import ImageHostError
from images import HostedImage
from payloads import JsonSubmission, LogoSource
from schemas import User
from security import hash_password, login

# 1x1 transparent PNG
PNG_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
PNG_DATA_URL = f"data:image/png;base64,{PNG_BASE64}"


class FakeImageHost:
    def __init__(self, configured=True, fail=False):
        self.configured = configured
        self.fail = fail
        self.uploads = []

    def upload(self, data, folder, size):
        if self.fail:
            raise ImageHostError("upload refused")
        self.uploads.append((data, folder, size))
        n = len(self.uploads)
        return HostedImage(url=f"https://res.cloudinary.com/demo/{folder}/logo{n}.png", public_id=f"{folder}/logo{n}")


def business_fields(**overrides):
    fields = {
        "businessName": "Joe's Café!!",
        "category": "Restaurants",
        "subCategory": "Coffee Shops",
        "province": "Punjab",
        "city": "Lahore",
        "postalCode": "54000",
        "address": "12 Mall Road",
        "phone": "+92 42 1234567",
        "email": "owner@example.com",
        "description": "Coffee and pastries.",
    }
    fields.update(overrides)
    return fields


def submission(logo_data_url=None, **overrides):
    return JsonSubmission(fields=business_fields(**overrides), logo=LogoSource(data_url=logo_data_url))


def make_user(db, email, role, password="secret123", name=None):
    """Insert a user and return a live bearer token for it."""
    create_document(db, USERS, User(name=name or email.split("@")[0], email=email,
                                    password=hash_password(password), role=role))
    return login(db, email, password)["token"]
