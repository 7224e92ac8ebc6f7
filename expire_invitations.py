from freelancedash.main import create_app
from freelancedash.extensions import db
from freelancedash.models.invitation import Invitation
from freelancedash.services.invitation_service import expire_stale_invitations
from freelancedash.utils.transactions import utcnow

# -------------------------------------------------------------------
# HELPERS
# -------------------------------------------------------------------

def count_by_status():
    rows = (
        db.session.query(Invitation.status, db.func.count(Invitation.id))
        .group_by(Invitation.status)
        .all()
    )
    return {status: count for status, count in rows}


# -------------------------------------------------------------------
# MAIN LOGIC
# -------------------------------------------------------------------

def sweep_expired_invitations():
    now = utcnow()
    print(f"Sweeping invitations pending past {now.isoformat()}Z")
    print(f"Before: {count_by_status()}")

    expired = expire_stale_invitations(db.session, now=now)

    print(f"Marked {expired} invitation(s) as expired")
    print(f"After:  {count_by_status()}")


# -------------------------------------------------------------------
# ENTRY POINT
# -------------------------------------------------------------------

if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        sweep_expired_invitations()
