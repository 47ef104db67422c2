"""
Perplexity Web: Perplexity search through browser automation

This package drives the Perplexity web UI with Playwright, using a persistent
(logged-in) browser profile, and serves the results to two kinds of callers:

- MCP clients, through the `search`, `pro_search` and `init` tools (stdio)
- anything that speaks HTTP, through a small relay API (default port 3333)

Key Pieces:
- automation: session lifecycle, query submission, completion polling,
  answer and source extraction, diagnostic screenshots
- tools: MCP tool adapter
- api_server: FastAPI relay
- serve: process entry point running both surfaces on one event loop
- client: requests-based client for the relay, used by the Streamlit panel

There is no Perplexity API involved; the selectors track the site's markup and
may need repair when it changes (see scripts/analyze_page.py).
"""
