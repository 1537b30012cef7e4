"""
Script para inicializar las tablas de PBLab

Uso:
    python -m pblab.scripts.init_db
    PBLAB_DATABASE_URL=postgresql://... python -m pblab.scripts.init_db
"""
from ..database.config import init_database


def init_db():
    """Create all tables"""
    print("Creating database tables...")
    config = init_database(create_tables=True)
    print(f"✓ Tables created successfully! ({config.engine.dialect.name})")


if __name__ == "__main__":
    init_db()
