"""Test the flask CLI commands."""
from intrack.models.user import User, UserRole


def test_create_admin(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['create-admin'], input='Root@Example.com\nSite Admin\nadminpass\n')

    assert result.exit_code == 0, result.output
    admin = User.query.filter_by(email='root@example.com').first()
    assert admin.role == UserRole.ADMIN
    assert admin.check_password('adminpass')


def test_create_admin_rejects_duplicate(app, student):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['create-admin'], input=f'{student.email}\nSomeone\nadminpass\n')

    assert result.exit_code != 0
    assert 'already exists' in result.output


def test_init_db(app):
    result = app.test_cli_runner().invoke(args=['init-db'])

    assert result.exit_code == 0
    assert 'Created all tables.' in result.output
