"""
Client Directory - SQLAlchemy Database Models

Two collections:
- clients: fixed-schema record (id, email, encrypted mobile)
- client_attributes: caller-defined name/value pairs keyed by client id
"""

from sqlalchemy import Column, String, Text, Integer, Index

from database.connection import Base


class ClientDB(Base):
    """
    A client record.

    `id` is the generated hex identifier exposed to callers. It is not
    unique-constrained; `pk` gives storage-native creation order.
    """
    __tablename__ = "clients"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, index=True)
    email = Column(String(320), nullable=False)
    mobile = Column(Text, nullable=False)  # ciphertext


class ClientAttributeDB(Base):
    """
    An arbitrary attribute attached to a client.

    client_id is a reference by convention only (no foreign key); the
    client store removes attributes before removing the client.
    """
    __tablename__ = "client_attributes"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    value = Column(Text, nullable=False)

    # One row per attribute name per client
    __table_args__ = (
        Index('ix_client_attributes_client_name', 'client_id', 'name', unique=True),
    )
