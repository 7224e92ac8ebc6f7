from freelancedash.extensions import db
from freelancedash.utils.transactions import utcnow
import uuid

TASK_STATUSES = ("pending", "in-progress", "completed")


def gen_task_id():
    return f"tsk-{uuid.uuid4().hex[:12]}"


class Task(db.Model):
    __tablename__ = "tasks"

    id = db.Column(db.String(50), primary_key=True, default=gen_task_id)
    project_id = db.Column(db.String(50), db.ForeignKey("projects.id"), nullable=False, index=True)

    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    estimated_hours = db.Column(db.Float, nullable=False, default=0)
    time_spent = db.Column(db.Float, nullable=False, default=0)

    progress = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="pending")

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)

    project = db.relationship(
        "Project",
        backref=db.backref("tasks", lazy=True, cascade="all, delete"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "estimatedHours": self.estimated_hours,
            "timeSpent": self.time_spent,
            "progress": self.progress,
            "status": self.status,
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
            "completedAt": self.completed_at.isoformat() + "Z" if self.completed_at else None,
        }
