"""
One-time campaign rule refresh script.

Fetches the organization's campaign rules and persists them to the local
cache without starting the scanner. Useful before going offline.
"""
from apps.receiver_app import ReceiverApp, load_campaign_rules


def main():
    """Refresh the campaign rule cache once."""
    app = ReceiverApp()
    app.set_status(load_campaign_rules(app.rule_cache))


if __name__ == "__main__":
    main()
