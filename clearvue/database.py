"""Database configuration and initialization."""
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# Global engine; the thread-local session registry is bound in init_db()
engine = None
db_session = scoped_session(sessionmaker(autoflush=False))


def _engine_options(app) -> dict:
    """Build create_engine() keyword arguments for the configured backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }

    if database_uri.startswith('sqlite'):
        # SQLite serializes writers; the busy timeout is the operation deadline
        options['connect_args'] = {
            'check_same_thread': False,
            'timeout': app.config.get('DB_BUSY_TIMEOUT', 5),
        }
        return options

    options['pool_size'] = 10
    options['max_overflow'] = 20
    timeout_ms = app.config.get('DB_STATEMENT_TIMEOUT_MS')
    if timeout_ms and database_uri.startswith('postgresql'):
        options['connect_args'] = {'options': f'-c statement_timeout={int(timeout_ms)}'}
    return options


def init_db(app):
    """Initialize database connection."""
    global engine

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session.remove()
    db_session.configure(bind=engine)

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models package."""
    import clearvue.models  # noqa: F401  (registers mappers on Base.metadata)
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table (test teardown and `flask init-db --drop`)."""
    import clearvue.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


# Alias for easier imports
db = db_session
