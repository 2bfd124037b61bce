from sqlalchemy.orm import DeclarativeBase
from prizemgr.db.metadata import metadata_obj


class Base(DeclarativeBase):
    metadata = metadata_obj
