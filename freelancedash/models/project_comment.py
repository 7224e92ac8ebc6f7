from freelancedash.extensions import db
from freelancedash.utils.transactions import utcnow
import uuid

COMMENT_KINDS = ("comment", "client_feedback", "thread_reply")


def gen_comment_id():
    return f"cmt-{uuid.uuid4().hex[:12]}"


class ProjectComment(db.Model):
    __tablename__ = "project_comments"

    id = db.Column(db.String(50), primary_key=True, default=gen_comment_id)
    project_id = db.Column(db.String(50), db.ForeignKey("projects.id"), nullable=False, index=True)
    author_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)

    body = db.Column(db.Text, nullable=False)
    kind = db.Column(db.String(20), nullable=False, default="comment")
    progress_update_id = db.Column(db.String(50), db.ForeignKey("progress_updates.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    project = db.relationship(
        "Project",
        backref=db.backref("comments", lazy=True, cascade="all, delete"),
    )
    author = db.relationship("User", lazy=True)
    progress_update = db.relationship("ProgressUpdate", lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "projectId": self.project_id,
            "authorId": self.author_id,
            "authorName": self.author.display_name if self.author else None,
            "body": self.body,
            "kind": self.kind,
            "progressUpdateId": self.progress_update_id,
            "createdAt": self.created_at.isoformat() + "Z",
        }
