from sqlalchemy.orm import declarative_base

# Declarative base shared by every model in app/models
Base = declarative_base()
