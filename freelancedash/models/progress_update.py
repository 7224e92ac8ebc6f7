from freelancedash.extensions import db
from freelancedash.utils.transactions import utcnow
import uuid


def gen_progress_update_id():
    return f"pu-{uuid.uuid4().hex[:12]}"


class ProgressUpdate(db.Model):
    """Append-only log of task progress changes. Rows are never updated."""

    __tablename__ = "progress_updates"

    id = db.Column(db.String(50), primary_key=True, default=gen_progress_update_id)
    task_id = db.Column(db.String(50), db.ForeignKey("tasks.id"), nullable=False, index=True)
    project_id = db.Column(db.String(50), db.ForeignKey("projects.id"), nullable=False, index=True)

    old_progress = db.Column(db.Integer, nullable=False)
    new_progress = db.Column(db.Integer, nullable=False)
    progress_change = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=False, default="")

    updated_by = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    task = db.relationship(
        "Task",
        backref=db.backref("progress_updates", lazy=True, cascade="all, delete"),
    )
    project = db.relationship(
        "Project",
        backref=db.backref("progress_updates", lazy=True, cascade="all, delete"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "taskId": self.task_id,
            "projectId": self.project_id,
            "oldProgress": self.old_progress,
            "newProgress": self.new_progress,
            "progressChange": self.progress_change,
            "notes": self.notes,
            "updatedBy": self.updated_by,
            "createdAt": self.created_at.isoformat() + "Z",
        }
