from sitecollab.domains.collaboration.presence import PresenceEntry, PresenceTracker

__all__ = ["PresenceEntry", "PresenceTracker"]
