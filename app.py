from __future__ import annotations

import streamlit as st

from stockroom.config import get_settings
from stockroom.logger import configure_logging

st.set_page_config(page_title="Stockroom", page_icon="🧴", layout="wide")

configure_logging(get_settings().log_level)

pages = [
    st.Page("home.py", title="Dashboard", icon="🏠"),
    st.Page("pages/1_📦_Inventory.py", title="Inventory", icon="📦"),
    st.Page("pages/2_🏭_Production.py", title="Production", icon="🏭"),
    st.Page("pages/3_🛒_Sales.py", title="Sales", icon="🛒"),
    st.Page("pages/4_📊_Analytics.py", title="Analytics", icon="📊"),
    st.Page("pages/5_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
