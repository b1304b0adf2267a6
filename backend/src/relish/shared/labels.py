"""Context and scope labels for encrypted fields.

Each semantic field has one label used both as the AES-GCM associated data
(binding a ciphertext to its column) and as the blind-index scope (giving each
field its own hash domain).

These strings are part of the durable data format. Changing one invalidates
every row written under it, so bump the version suffix (``:v2``) instead of
editing a value in place.
"""

CONTACT_FULL_NAME = "contact.full_name"
CONTACT_EMAIL = "contact.email"
CONTACT_PHONE = "contact.phone"
CONTACT_COMPANY = "contact.company"
CONTACT_POSITION = "contact.position"
CONTACT_LINKEDIN = "contact.linkedin"

USER_EMAIL = "user:email"

LEAD_EMAIL = "lead.email"
LEAD_PHONE = "lead.phone"
LEAD_LINKEDIN = "lead.linkedin"

INTERACTION_SUMMARY = "interaction.summary"
