from sqlalchemy import Column, Integer, String
from . import Base

class User(Base):
    __tablename__ = 'user'
    id = Column(Integer, primary_key=True)
    username = Column(String(150), unique=True, index=True, nullable=False)
    # salted digest material; never leaves the auth service
    password = Column(String(255), nullable=False)
    salt = Column(String(255), nullable=False)
