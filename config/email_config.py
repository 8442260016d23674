"""
Email delivery constants.

These are fixed values that don't change per environment.
Environment-specific values (API keys, hosts) are loaded from settings.
"""

# Resend API endpoint
RESEND_API_URL = "https://api.resend.com/emails"

# Outbound mail queue
MAIL_COLLECTION = "mail"
MAIL_MAX_ATTEMPTS = 3
MAIL_DISPATCH_BATCH_SIZE = 50

# Default values (can be overridden by env vars)
EMAIL_DEFAULTS = {
    "mode": "console",
    "from_name": "3D Print Manager",
    "from_email": "noreply@printshop.local",
}

INVITATION_SUBJECT = "You have been invited to join {organization_name}"

INVITATION_HTML = """\
<p>Hello,</p>
<p><strong>{inviter_email}</strong> has invited you to join
<strong>{organization_name}</strong> on 3D Print Manager as <em>{role}</em>.</p>
<p>Sign in or create an account with this email address to accept:</p>
<p><a href="{app_url}">{app_url}</a></p>
"""
