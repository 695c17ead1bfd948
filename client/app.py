import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import httpx
import streamlit as st

from assistant_relay.client import ChatClient, ChatClientError


def setup_client_logging() -> logging.Logger:
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("assistant_relay.streamlit")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "client.log", maxBytes=2_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)
    return logger


LOGGER = setup_client_logging()


st.set_page_config(page_title="Assistant Relay", page_icon="💬", layout="centered")

st.title("Assistant Relay")

with st.sidebar:
    st.subheader("Connection")
    api_url = st.text_input("Chat endpoint", value="http://localhost:8000/api/chat")
    st.text_input("Thread ID", value=st.session_state.get("thread_id") or "", disabled=True)
    st.markdown("---")
    if st.button("New conversation"):
        st.session_state["messages"] = []
        st.session_state["thread_id"] = None

if "messages" not in st.session_state:
    st.session_state["messages"] = []

for m in st.session_state["messages"]:
    with st.chat_message(m["role"]):
        st.markdown(m["content"])

prompt = st.chat_input("Message the assistant…")
if prompt:
    st.session_state["messages"].append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    client = ChatClient(api_url, thread_id=st.session_state.get("thread_id"))
    with st.chat_message("assistant"):
        try:
            with st.spinner("Waiting for the assistant…"):
                full = client.send(prompt).reply
            st.markdown(full)
        except (ChatClientError, httpx.HTTPError) as e:
            LOGGER.error("Chat turn failed: %s", e)
            full = f"Error: {e}"
            st.error(full)
    st.session_state["thread_id"] = client.thread_id

    st.session_state["messages"].append({"role": "assistant", "content": full})
