import logging

from freelancedash.models.progress_update import ProgressUpdate
from freelancedash.models.project import Project
from freelancedash.models.task import Task
from freelancedash.services.change_feed import publish
from freelancedash.services.project_service import get_project, get_project_for_user
from freelancedash.utils.exceptions import InvalidState, NotFound, PermissionDenied, ValidationError
from freelancedash.utils.money import round_half_up
from freelancedash.utils.transactions import atomic, retry_transient, utcnow

logger = logging.getLogger(__name__)

# a project awaiting its contract signature is not open for work
WORKABLE_STATUSES = ("active", "completed")


def completion_percentage(tasks):
    tasks = list(tasks)
    if not tasks:
        return 0
    completed = sum(1 for t in tasks if t.status == "completed")
    return round_half_up(100 * completed / len(tasks))


def project_progress(session, project_id, user_id):
    project = get_project_for_user(session, project_id, user_id)
    tasks = session.query(Task).filter_by(project_id=project.id).all()
    return {
        "projectId": project.id,
        "status": project.status,
        "totalTasks": len(tasks),
        "completedTasks": sum(1 for t in tasks if t.status == "completed"),
        "completionPercentage": completion_percentage(tasks),
        "hoursLogged": round(sum(t.time_spent or 0 for t in tasks), 2),
    }


@retry_transient()
def create_task(session, project_id, user_id, data, feed=None):
    project = get_project(session, project_id)
    if project.freelancer_id != user_id:
        raise PermissionDenied("Only the project owner can add tasks")
    if project.status in ("cancelled", "rejected"):
        raise InvalidState(f"Cannot add tasks to a {project.status} project")

    task = Task(
        project_id=project.id,
        title=data["title"].strip(),
        description=data.get("description"),
        estimated_hours=data.get("estimated_hours") or 0,
        status="pending",
        progress=0,
    )
    with atomic(session):
        session.add(task)
        # a new open task reopens a finished project
        if project.status == "completed":
            project.status = "active"

    publish(feed, "tasks", "created", task.to_dict())
    return task


def list_tasks(session, project_id, user_id):
    project = get_project_for_user(session, project_id, user_id)
    return (
        session.query(Task)
        .filter_by(project_id=project.id)
        .order_by(Task.created_at.asc())
        .all()
    )


@retry_transient()
def log_progress(session, task_id, user_id, progress, notes="", hours=0, now=None, feed=None):
    """
    Append one ProgressUpdate and move the task and project with it.
    Logging the same value twice still produces two records.
    """
    if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100:
        raise ValidationError(
            "Progress must be an integer between 0 and 100",
            details={"fields": {"progress": ["Must be between 0 and 100."]}},
        )
    if hours is not None and hours < 0:
        raise ValidationError("Hours cannot be negative", details={"fields": {"hours": ["Must be >= 0."]}})

    now = now or utcnow()
    with atomic(session):
        task = session.query(Task).filter(Task.id == task_id).with_for_update().first()
        if not task:
            raise NotFound("Task not found", details={"taskId": task_id})

        project = session.query(Project).filter(Project.id == task.project_id).with_for_update().one()
        if project.freelancer_id != user_id:
            raise PermissionDenied("Only the project owner can log progress")
        if project.status not in WORKABLE_STATUSES:
            raise InvalidState(
                f"Progress cannot be logged while the project is {project.status}",
                details={"projectStatus": project.status},
            )

        old = task.progress or 0
        update = ProgressUpdate(
            task_id=task.id,
            project_id=project.id,
            old_progress=old,
            new_progress=progress,
            progress_change=progress - old,
            notes=notes or "",
            updated_by=user_id,
            created_at=now,
        )
        session.add(update)

        task.progress = progress
        task.time_spent = (task.time_spent or 0) + (hours or 0)
        if progress >= 100:
            task.status = "completed"
            task.completed_at = task.completed_at or now
        else:
            task.status = "in-progress"
            task.completed_at = None
        task.updated_at = now

        session.flush()
        tasks = session.query(Task).filter_by(project_id=project.id).all()
        percentage = completion_percentage(tasks)
        project.status = "completed" if percentage == 100 else "active"

    logger.info("Task %s progress %d -> %d (project %s at %d%%)", task.id, old, progress, project.id, percentage)
    publish(feed, "progress_updates", "created", update.to_dict())
    publish(feed, "tasks", "updated", task.to_dict())
    return update, task, project


def list_progress_updates(session, project_id, user_id, since=None):
    project = get_project_for_user(session, project_id, user_id)
    q = session.query(ProgressUpdate).filter(ProgressUpdate.project_id == project.id)
    if since is not None:
        q = q.filter(ProgressUpdate.created_at > since)
    return q.order_by(ProgressUpdate.created_at.desc()).all()
