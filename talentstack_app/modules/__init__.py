"""Feature modules of the TalentStack learning app."""
