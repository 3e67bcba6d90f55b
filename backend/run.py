"""Application entry point."""
import os
import click
from flask.cli import with_appcontext
from intrack import create_app, db
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Create Flask app
app = create_app(os.getenv('FLASK_ENV', 'development'))


@app.cli.command()
@with_appcontext
def drop_db():
    """Drop all database tables."""
    if click.confirm('Are you sure you want to drop all tables?'):
        db.drop_all()
        click.echo('Database tables dropped.')


@app.cli.command()
@with_appcontext
def seed_users():
    """Create a sample student and company account."""
    from intrack.models.user import User, UserRole

    samples = [
        ('Sample Student', 'student@intrack.local', 'student123', UserRole.STUDENT),
        ('Sample Company', 'company@intrack.local', 'company123', UserRole.COMPANY),
    ]

    for name, email, password, role in samples:
        if User.query.filter_by(email=email).first():
            continue
        user = User(email=email, name=name, role=role)
        user.set_password(password)
        db.session.add(user)

    db.session.commit()
    click.echo('Sample users created.')
    for _, email, password, role in samples:
        click.echo(f'  {role.value}: {email} / {password}')


if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = os.environ.get('FLASK_ENV') == 'development'

    app.run(host=host, port=port, debug=debug)
