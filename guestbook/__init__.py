"""Conference guestbook: conference pages with visitor comments and photos."""
