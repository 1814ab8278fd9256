from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from campus_lms.db.base_class import Base


class Module(Base):
    __tablename__ = "modules"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    published_at = Column(DateTime(timezone=True), nullable=True)
    unpublished_at = Column(DateTime(timezone=True), nullable=True)
    to_publish_at = Column(DateTime(timezone=True), nullable=True)

    course = relationship("Course", back_populates="modules")
    sections = relationship(
        "ModuleSection",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="ModuleSection.order",
    )


class ModuleSection(Base):
    __tablename__ = "module_sections"

    id = Column(Integer, primary_key=True, index=True)
    module_id = Column(Integer, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    order = Column(Integer, nullable=False, default=0)

    published_at = Column(DateTime(timezone=True), nullable=True)
    unpublished_at = Column(DateTime(timezone=True), nullable=True)
    to_publish_at = Column(DateTime(timezone=True), nullable=True)

    module = relationship("Module", back_populates="sections")
    contents = relationship(
        "ModuleContent",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="ModuleContent.order",
    )
