"""Account storage, session issuing, upstream gateway and the sync job."""
