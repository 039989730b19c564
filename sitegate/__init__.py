"""
Sitegate

Tenant content resolution and bot-aware rendering for the site/funnel/course
builder:
1. Maps an inbound hostname to a verified custom domain and its store
2. Routes the request path to one website page, funnel step or course area
3. Cascades SEO metadata from entity -> parent -> store
4. Serves crawlers a pre-rendered shell, humans the live application
5. Compiles page-builder documents to semantic HTML
"""

__version__ = "0.1.0"
