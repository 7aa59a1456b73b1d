# app/models/student.py
from sqlalchemy import Column, Integer, String

from app.db.base import Base


class Student(Base):
    """
    Student roster entry. Students attend every subject that lists their section.
    """

    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), nullable=False, unique=True)
    section = Column(String(64), nullable=True, index=True)

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email or "Student"
