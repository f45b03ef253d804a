import pytest
from django.contrib.auth import get_user_model

pytestmark = pytest.mark.django_db
User = get_user_model()


def test_name_built_from_first_and_last_name():
    user = User.objects.create_user(
        username="asha",
        email="asha@example.com",
        first_name="Asha",
        last_name="Rao",
    )
    assert user.name == "Asha Rao"


def test_explicit_name_kept():
    user = User.objects.create_user(
        username="ravi", email="ravi@example.com", name="Ravi K."
    )
    assert user.name == "Ravi K."


@pytest.mark.parametrize(
    ("flags", "expected"),
    [
        ({}, False),
        ({"is_admin": True}, True),
        ({"is_staff": True}, True),
        ({"is_superuser": True}, True),
    ],
)
def test_receives_admin_updates(flags, expected):
    user = User(username="u", email="u@example.com", **flags)
    assert user.receives_admin_updates is expected
