"""Database configuration and initialization."""
from flask import current_app
from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()


class Database:
    """Engine plus thread-scoped session, owned by the Flask application."""

    def __init__(self, database_uri: str, echo: bool = False):
        engine_options = {
            'echo': echo,
            'pool_pre_ping': True,  # Enable connection health checks
        }
        is_sqlite = database_uri.startswith('sqlite')
        if is_sqlite:
            engine_options['connect_args'] = {'check_same_thread': False}
            if database_uri in ('sqlite://', 'sqlite:///:memory:'):
                # One shared connection, otherwise every checkout sees an empty database
                engine_options['poolclass'] = StaticPool
        else:
            engine_options['pool_size'] = 10
            engine_options['max_overflow'] = 20

        self.engine = create_engine(database_uri, **engine_options)

        if is_sqlite:
            event.listen(self.engine, 'connect', _enable_sqlite_foreign_keys)

        self.session = scoped_session(
            sessionmaker(autoflush=False, bind=self.engine)
        )

    def create_all(self):
        """Create every table known to the models (tests and local development)."""
        import app.models  # noqa: F401
        Base.metadata.create_all(self.engine)

    def drop_all(self):
        import app.models  # noqa: F401
        Base.metadata.drop_all(self.engine)

    def remove(self):
        self.session.remove()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def init_db(app) -> Database:
    """Initialize database connection for the given app."""
    database = Database(
        app.config['SQLALCHEMY_DATABASE_URI'],
        echo=app.config.get('SQLALCHEMY_ECHO', False),
    )
    app.extensions['database'] = database

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            database.session.rollback()
        database.session.remove()

    return database


def get_database(app=None) -> Database:
    """Get the Database object of the given (or current) app."""
    app = app or current_app
    return app.extensions['database']


def get_session():
    """Get database session."""
    return get_database().session
