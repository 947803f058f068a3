"""In-memory stand-ins for Firestore and Cloud Storage used by the test suite."""
