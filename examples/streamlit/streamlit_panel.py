"""
Streamlit Panel for the Perplexity Relay

A chat-style front end for the Perplexity HTTP relay. Questions are sent to
the relay's /search endpoint; answers are shown with their sources.

Dependencies:
    - streamlit: Web framework for data apps
    - perplexity_web.client: requests-based relay client

Setup:
    1. Start the relay: python -m perplexity_web.serve
       (log in to Perplexity once in the browser window it opens)
    2. Run this script: streamlit run examples/streamlit/streamlit_panel.py
    3. Open the provided URL in your browser (typically http://localhost:8501)

Features:
    - Search mode selection (concise/copilot/deep), persisted in the url
    - Pro search toggle with an optional focus area
    - Server status indicator
    - Session re-initialization and transcript clearing
    - Debug mode showing the raw relay response
"""

import json

import streamlit as st

from perplexity_web.client import RelayClient

# ============================================================================
# Session State Initialization
# ============================================================================

# Streamlit re-runs the script on each interaction; the transcript lives in
# session_state so it survives reruns.
if "messages" not in st.session_state:
    st.session_state.messages = []

if "mode" not in st.session_state:
    st.session_state.mode = st.query_params.get("mode", "concise")

st.title("🔎 Perplexity")

# ============================================================================
# Sidebar Configuration Controls
# ============================================================================

server_url = st.sidebar.text_input(
    "Server url", value=RelayClient().server_url
)
client = RelayClient(server_url)

if client.is_server_running():
    st.sidebar.success("Server running")
else:
    st.sidebar.error("Server not reachable. Start it with `python -m perplexity_web.serve`.")

modes = ["concise", "copilot", "deep"]
mode = st.sidebar.segmented_control(
    "Search mode",
    modes,
    selection_mode="single",
    default=st.session_state.mode if st.session_state.mode in modes else "concise",
)
st.query_params.update({"mode": mode or "concise"})

st.sidebar.divider()

# Pro search always runs in deep mode; focus is a hint prefixed to the query.
use_pro = st.sidebar.toggle("Pro search", value=False)
if use_pro:
    focus = st.sidebar.selectbox(
        "Focus",
        ["(none)", "internet", "academic", "writing", "wolfram", "youtube", "reddit"],
    )
else:
    focus = None

st.sidebar.divider()

if st.sidebar.button("Initialize session"):
    with st.sidebar:
        with st.spinner("Initializing browser session..."):
            result = client.initialize()
    if result.get("success"):
        st.sidebar.success(result.get("message", "Session initialized"))
    else:
        st.sidebar.error(f"Initialization failed: {result.get('error')}")

if st.sidebar.button("Clear"):
    st.session_state.messages = []

debug_mode = st.sidebar.toggle("Debug mode", value=False)

if debug_mode:
    st.sidebar.divider()
    st.sidebar.caption("Screenshots")
    st.sidebar.code("\n".join(client.list_screenshots()) or "(none)", "text")


# ============================================================================
# Helper Functions
# ============================================================================

def render_result(container, result: dict):
    """Render one relay response (success or failure) into `container`."""
    if result.get("success"):
        container.markdown(result.get("answer", ""))
        sources = result.get("sources") or []
        if sources:
            source_lines = "\n".join(
                f"{i}. [{source.get('title')}]({source.get('url')})"
                for i, source in enumerate(sources, start=1)
            )
            container.caption(f"**Sources:**\n{source_lines}")
    else:
        container.error(f"Search failed: {result.get('error', 'Unknown error')}")

    if debug_mode:
        container.expander("Debug", expanded=False).code(
            json.dumps(result, indent=2), language="json"
        )


def run(prompt: str):
    with st.chat_message("assistant"):
        placeholder = st.empty()
        with placeholder, st.spinner("Searching Perplexity..."):
            if use_pro:
                result = client.pro_search(
                    prompt, None if focus == "(none)" else focus
                )
            else:
                result = client.search(prompt, mode or "concise")
        render_result(placeholder.container(), result)
    st.session_state.messages.append({"role": "assistant", "result": result})


# ============================================================================
# Chat Display
# ============================================================================

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        if msg["role"] == "user":
            st.markdown(msg["content"])
        else:
            render_result(st.container(), msg["result"])


# ============================================================================
# User Input
# ============================================================================

if prompt := st.chat_input("Ask Perplexity..."):
    st.session_state.messages.append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)
    run(prompt)
