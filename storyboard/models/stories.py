from sqlalchemy import Column, Integer, String, ForeignKey
from . import Base

class Story(Base):
    __tablename__ = 'story'
    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    creator = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), index=True, nullable=False)
