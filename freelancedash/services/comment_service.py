from freelancedash.models.project_comment import ProjectComment
from freelancedash.models.progress_update import ProgressUpdate
from freelancedash.services.change_feed import publish
from freelancedash.services.notification_service import notify_user
from freelancedash.services.project_service import get_project_for_user
from freelancedash.utils.exceptions import NotFound
from freelancedash.utils.transactions import atomic, retry_transient


@retry_transient()
def add_comment(session, project_id, author_id, body, kind="comment", progress_update_id=None, feed=None):
    project = get_project_for_user(session, project_id, author_id)

    if progress_update_id:
        update = session.get(ProgressUpdate, progress_update_id)
        if not update or update.project_id != project.id:
            raise NotFound("Progress update not found", details={"progressUpdateId": progress_update_id})

    comment = ProjectComment(
        project_id=project.id,
        author_id=author_id,
        body=body.strip(),
        kind=kind,
        progress_update_id=progress_update_id,
    )
    recipient = project.client_id if author_id == project.freelancer_id else project.freelancer_id

    with atomic(session):
        session.add(comment)
        if recipient:
            notify_user(
                session,
                recipient,
                title="New comment",
                message=f"New {kind.replace('_', ' ')} on {project.title}",
                notif_type="comment",
                details={"projectId": project.id},
                sender_id=author_id,
            )

    publish(feed, "project_comments", "created", comment.to_dict())
    return comment


def list_comments(session, project_id, user_id):
    project = get_project_for_user(session, project_id, user_id)
    return (
        session.query(ProjectComment)
        .filter_by(project_id=project.id)
        .order_by(ProjectComment.created_at.asc())
        .all()
    )
