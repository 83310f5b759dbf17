"""Staff accounts and the bootstrap CLI."""

import pytest

from opticapos.errors import ConflictError, ValidationError


def test_create_user_normalizes_email_and_role(shop):
    user = shop.users.create_user(name=" Maria ", email=" Maria@Optica.Local ", role="MANAGER")

    assert user.name == "Maria"
    assert user.email == "maria@optica.local"
    assert user.role == "manager"
    assert user.is_privileged


@pytest.mark.parametrize("email,role", [
    ("not-an-email", "seller"),
    ("x@optica.local", "cashier"),
])
def test_create_user_validation(shop, email, role):
    with pytest.raises(ValidationError):
        shop.users.create_user(name="X", email=email, role=role)


def test_duplicate_email(shop, seller):
    with pytest.raises(ConflictError):
        shop.users.create_user(name="Outra", email="SELLER@optica.local", role="seller")


def test_update_role(shop, seller):
    assert shop.users.update_role(seller.id, "manager").role == "manager"
    with pytest.raises(ValidationError):
        shop.users.update_role(seller.id, "root")


def test_delete_user_with_sales_conflicts(shop, seller, make_product):
    product = make_product()
    shop.sales.create_sale(seller.id, [{"product_id": product.id, "quantity": 1}])

    with pytest.raises(ConflictError):
        shop.users.delete_user(seller.id)


def test_seed_admin_is_idempotent(shop):
    user, created = shop.users.seed_admin()
    again, created_again = shop.users.seed_admin()

    assert created is True
    assert created_again is False
    assert again.id == user.id
    assert user.role == "owner"


def test_cli_seed_admin_and_users(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["shop", "seed-admin"])
    assert result.exit_code == 0
    assert "Created owner Admin" in result.output

    result = runner.invoke(args=["users", "create", "--name", "Vera", "--email", "vera@optica.local", "--role", "seller"])
    assert result.exit_code == 0
    assert "vera@optica.local" in result.output

    result = runner.invoke(args=["users", "create", "--name", "Vera", "--email", "vera@optica.local"])
    assert result.exit_code != 0
    assert "Email already registered" in result.output

    result = runner.invoke(args=["users", "list"])
    assert "admin@optica.local" in result.output
    assert "vera@optica.local" in result.output


def test_cli_purge_read(app, db_session, staff):
    result = app.test_cli_runner().invoke(args=["notifications", "purge-read", "--older-than-days", "30"])
    assert result.exit_code == 0
    assert "Deleted 0 read notification(s)" in result.output


@pytest.mark.parametrize("kwargs", [
    {"name": "X", "email": 123, "role": "seller"},
    {"name": "X", "email": "x@optica.local", "role": 5},
    {"name": 7, "email": "x@optica.local", "role": "seller"},
])
def test_create_user_rejects_non_string_fields(shop, kwargs):
    with pytest.raises(ValidationError):
        shop.users.create_user(**kwargs)


def test_seed_admin_finds_existing_owner_by_email(shop):
    renamed = shop.users.create_user(name="Dona Maria", email="admin@optica.local", role="owner")

    user, created = shop.users.seed_admin()

    assert created is False
    assert user.id == renamed.id


def test_seed_admin_refuses_email_held_by_non_owner(shop):
    shop.users.create_user(name="Caixa", email="admin@optica.local", role="seller")

    with pytest.raises(ConflictError):
        shop.users.seed_admin()


def test_cli_seed_admin_reports_conflict(app, shop):
    shop.users.create_user(name="Caixa", email="admin@optica.local", role="seller")

    result = app.test_cli_runner().invoke(args=["shop", "seed-admin"])

    assert result.exit_code == 1
    assert "already registered with role seller" in result.output
