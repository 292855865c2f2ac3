from grocerpos.models import ProductBatch, User


def test_users_create_command(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--username", "owner", "--name", "Owner", "--password", "long-password", "--role", "ADMIN",
    ])

    assert result.exit_code == 0, result.output
    assert "PASS Created user: owner" in result.output
    assert db_session.query(User).filter_by(username="owner").one().role == "ADMIN"


def test_users_create_rejects_duplicate(app, db_session, make_user):
    make_user(username="owner")
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--username", "owner", "--name", "Owner", "--password", "long-password",
    ])
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_mark_expired_command(app, db_session, make_product, make_batch):
    product = make_product()
    past = make_batch(product, 3, expires_in_days=-2)

    result = app.test_cli_runner().invoke(args=["inventory", "mark-expired"])

    assert result.exit_code == 0, result.output
    assert "Marked 1 batch(es) expired" in result.output
    db_session.expire_all()
    assert db_session.get(ProductBatch, past.id).is_expired is True


def test_system_init_is_idempotent(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "PASS Tables created" in result.output
