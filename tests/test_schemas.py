"""Tests for request body validation."""
import pytest
from pydantic import ValidationError

from safespace.schemas.schemas import ProfileUpdate, SpecialistCreate, SpecialistUpdate


class TestProfileUpdate:
    @pytest.mark.parametrize("phone", ["0722123456", "+40722123456", "0040722123456", ""])
    def test_valid_phones(self, phone):
        assert ProfileUpdate(fullname="Ana Pop", phone=phone).phone == phone

    @pytest.mark.parametrize("phone", ["072212345", "+4072212345", "+33722123456", "07221234567", "phone"])
    def test_invalid_phones(self, phone):
        with pytest.raises(ValidationError):
            ProfileUpdate(fullname="Ana Pop", phone=phone)

    def test_fields_are_trimmed(self):
        data = ProfileUpdate(fullname="  Ana Pop ", about="  hello ", avatar_alt=" me ")
        assert data.fullname == "Ana Pop"
        assert data.about == "hello"
        assert data.avatar_alt == "me"

    def test_short_name(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(fullname=" A ")

    def test_website_must_be_url(self):
        assert ProfileUpdate(fullname="Ana", website="https://ana.ro").website == "https://ana.ro"
        with pytest.raises(ValidationError):
            ProfileUpdate(fullname="Ana", website="ana.ro")

    def test_about_limit(self):
        ProfileUpdate(fullname="Ana", about="x" * 2000)
        with pytest.raises(ValidationError):
            ProfileUpdate(fullname="Ana", about="x" * 2001)

    def test_alt_limit(self):
        ProfileUpdate(fullname="Ana", avatar_alt="x" * 120)
        with pytest.raises(ValidationError):
            ProfileUpdate(fullname="Ana", avatar_alt="x" * 121)


class TestSpecialistCreate:
    def test_valid(self):
        data = SpecialistCreate(
            fullname="Dr. Ana", email=" Ana@Example.com ", phone="+1 (555) 123-4567", website="http://a.b"
        )
        assert data.email == "ana@example.com"
        assert data.is_verified is False

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            SpecialistCreate(fullname="Dr. Ana", email="ana.example.com")

    def test_invalid_phone(self):
        with pytest.raises(ValidationError):
            SpecialistCreate(fullname="Dr. Ana", email="a@b.c", phone="12-34")


class TestSpecialistUpdate:
    def test_only_set_fields_dumped(self):
        data = SpecialistUpdate(is_verified=True)
        assert data.model_dump(exclude_unset=True) == {"is_verified": True}

    def test_short_name(self):
        with pytest.raises(ValidationError):
            SpecialistUpdate(fullname="A")
