# Routes package init
"""
VectorDB CRUD — API Routes Package
===================================

Route Inventory:
    - records.py:     record CRUD, listing and similarity search
    - enrichment.py:  summarize, text-to-speech, text-to-image, classification
    - health.py:      GET /health

Routes stay thin: extract parameters, call a service, shape the response.
Errors are raised, never formatted here; main.py's handlers do that.
"""
