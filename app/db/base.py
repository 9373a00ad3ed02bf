# app/db/base.py
from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# SQLite solo autoincrementa columnas INTEGER PRIMARY KEY
IdBigInt = BigInteger().with_variant(Integer, "sqlite")
