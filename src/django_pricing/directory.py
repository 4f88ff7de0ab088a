"""Read-only partner/organization directory.

Maps a partner to the organization whose defaults apply to it. The
default implementation reads a static mapping from settings:

    PRICING_PARTNER_ORGANIZATIONS = {'partner-p': 'org-gulf'}
"""

from django_pricing import conf


class SettingsPartnerDirectory:
    """Directory backed by the PRICING_PARTNER_ORGANIZATIONS setting."""

    def organization_for(self, partner_id: str | None) -> str | None:
        if not partner_id:
            return None
        return conf.get_setting('PARTNER_ORGANIZATIONS', {}).get(partner_id)
