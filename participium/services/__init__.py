"""
Services layer - Business logic goes here.
Keep services focused on specific domains (sessions, reports, users, etc.)

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Services raise participium.core.exceptions errors, never HTTPException
- Each service is a lazily created singleton bound to the Firestore client
"""
