"""
Streamlit Frontend for TaxGo

This is the interface household-business owners use to keep their
books and estimate tax.

DESIGN PRINCIPLES:
1. Simple, clear interface in Vietnamese
2. Explicit confirmation before anything enters the ledger
3. Clear error messages in simple language
4. Figures are always estimates ("Tạm tính"), never a filing

The ledger and chat live in st.session_state: each browser session
gets its own components and loses them when the session ends.
"""

import asyncio
from decimal import Decimal

import streamlit as st

from taxgo.audit import create_correlation_id
from taxgo.config import get_settings, validate_all_settings
from taxgo.models import ExpenseCategory, TransactionDraft, TransactionType
from taxgo.models.chat import ChatRole
from taxgo.orchestrator import (
    AssistantFlow,
    CalculatorFlow,
    LedgerFlow,
    RequestInProgressError,
    create_app_components,
)
from taxgo.services.image import ImageValidationError
from taxgo.tax import (
    EXPENSE_CATEGORY_LABELS,
    TAX_GROUPS,
    InvalidGroupError,
    expense_category_label,
    format_currency,
    get_tax_group,
    group_label,
)
from taxgo.validation import IncompleteDraftError


# Page configuration
st.set_page_config(
    page_title="TaxGo",
    page_icon="🧾",
    layout="centered",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .warning-box {
        padding: 16px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 16px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


PAGES = ["📊 Tổng quan", "🧮 Tính thuế", "📒 Sổ sách", "💬 Trợ lý AI", "⚙️ Hoạt động & Cài đặt"]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components():
    """Get or create this session's components."""
    if "components" not in st.session_state:
        st.session_state.components = create_app_components()
    return st.session_state.components


def main():
    """Main application entry point."""
    ledger_flow, calculator_flow, assistant_flow, audit_logger = get_components()

    st.sidebar.title("🧾 TaxGo")
    st.sidebar.caption("Trợ lý thuế cho hộ kinh doanh")
    st.sidebar.markdown("---")

    page = st.sidebar.radio("Chuyển đến:", PAGES, index=0)

    st.sidebar.markdown("---")
    if assistant_flow.is_demo_mode:
        st.sidebar.info("Trợ lý AI đang chạy ở chế độ demo (chưa có API Key).")

    if page == PAGES[0]:
        render_dashboard_page(ledger_flow)
    elif page == PAGES[1]:
        render_calculator_page(calculator_flow)
    elif page == PAGES[2]:
        render_ledger_page(ledger_flow)
    elif page == PAGES[3]:
        render_assistant_page(assistant_flow)
    elif page == PAGES[4]:
        render_activity_page(audit_logger)


def render_dashboard_page(ledger_flow: LedgerFlow):
    """Totals, threshold warning and income distribution."""
    st.title("📊 Tổng quan tài chính")
    summary = ledger_flow.summary()

    col1, col2 = st.columns(2)
    col1.metric("Doanh thu", format_currency(summary.total_income))
    col2.metric("Chi phí", format_currency(summary.total_expense))
    st.metric("Dòng tiền ròng", format_currency(summary.net_cash_flow))

    st.markdown(f"""
    <div class="warning-box">
        <h4>Cảnh báo ngưỡng doanh thu</h4>
        <p>{summary.compliance_message}</p>
    </div>
    """, unsafe_allow_html=True)

    col1, col2 = st.columns(2)
    col1.metric("Thuế ước tính (VAT + TNCN)", format_currency(summary.estimated_tax))
    col2.metric("Lệ phí môn bài (năm)", format_currency(summary.projected_license_fee))

    st.subheader("Phân bố nguồn thu")
    if not summary.has_income_data:
        st.info("Chưa có dữ liệu giao dịch")
    for share in summary.income_distribution:
        st.markdown(f"**{share.name}**: {format_currency(share.value)}")
        st.progress(share.share)

    if summary.expense_breakdown:
        st.subheader("Cơ cấu chi phí")
        for category, amount in summary.expense_breakdown.items():
            st.markdown(f"**{expense_category_label(category)}**: {format_currency(amount)}")


def render_calculator_page(calculator_flow: CalculatorFlow):
    """Quick tax estimate and 01/CNKD export."""
    st.title("🧮 Tính Thuế Nhanh")

    group_id = st.selectbox(
        "Nhóm ngành nghề",
        options=[group.id for group in TAX_GROUPS],
        format_func=lambda gid: (
            f"{get_tax_group(gid).name} "
            f"({get_tax_group(gid).vat_rate}% + {get_tax_group(gid).pit_rate}%)"
        ),
    )
    group = get_tax_group(group_id)
    if group.warning:
        st.warning(group.warning)

    revenue = st.number_input(
        "Doanh thu phát sinh (VNĐ)",
        min_value=0,
        value=0,
        step=1_000_000,
        help="Ví dụ: 50000000",
    )
    projection = st.number_input(
        "Dự báo doanh thu cả năm (VNĐ)",
        min_value=0,
        value=int(get_settings().app.default_annual_projection),
        step=10_000_000,
        help="Dùng để xác định bậc lệ phí môn bài.",
    )

    if revenue <= 0:
        return

    try:
        result = calculator_flow.calculate(revenue, group_id, projection)
    except (InvalidGroupError, ValueError) as e:
        st.error(f"Không thể tính thuế: {e}")
        return

    st.subheader("Kết quả tính toán (Tạm tính)")
    if result.is_exempt:
        st.success("Doanh thu cho thuê tài sản dưới 100 triệu/năm: không phải nộp VAT và TNCN.")
    st.markdown(f"Thuế GTGT ({group.vat_rate}%): **{format_currency(result.vat_amount)}**")
    st.markdown(f"Thuế TNCN ({group.pit_rate}%): **{format_currency(result.pit_amount)}**")
    st.markdown(f"### Tổng thuế phải nộp: {format_currency(result.total_tax)}")
    st.info(f"Lệ phí môn bài (Năm): {format_currency(result.license_fee)}")

    taxpayer = calculator_flow.taxpayer
    with st.expander("Thông tin người nộp thuế"):
        name = st.text_input("Họ và tên", value=taxpayer.name)
        tax_code = st.text_input("Mã số thuế", value=taxpayer.tax_code)

    if st.button("📄 Tạo Tờ Khai XML (01/CNKD)", type="primary"):
        calculator_flow.export_filing(result, name=name, tax_code=tax_code)
        st.success("Đã tạo tờ khai XML mẫu 01/CNKD thành công!")

    filing = calculator_flow.latest_filing(result, name=name, tax_code=tax_code)
    if filing:
        filename, xml_text = filing
        st.download_button(
            "⬇️ Tải xuống",
            data=xml_text.encode("utf-8"),
            file_name=filename,
            mime="application/xml",
        )


def _reset_draft(draft: TransactionDraft) -> None:
    st.session_state.draft = draft
    st.session_state.form_version = st.session_state.get("form_version", 0) + 1


def render_ledger_page(ledger_flow: LedgerFlow):
    """Entry list, add form and receipt scan."""
    st.title("📒 Sổ Thu Chi")

    if "draft" not in st.session_state:
        _reset_draft(TransactionDraft())
    draft: TransactionDraft = st.session_state.draft
    version = st.session_state.form_version

    summary = ledger_flow.summary()
    if summary.cash_flow_warning:
        st.markdown(f"""
        <div class="error-box">
            <h4>Cảnh báo dòng tiền âm</h4>
            <p>{summary.cash_flow_warning}</p>
        </div>
        """, unsafe_allow_html=True)

    # Receipt scan
    with st.expander("📷 Quét hóa đơn", expanded=False):
        uploaded_file = st.file_uploader(
            "Chọn ảnh hóa đơn",
            type=get_settings().app.supported_formats_list,
            key=f"receipt_{version}",
        )
        if uploaded_file and st.button("🔍 Đọc hóa đơn", disabled=ledger_flow.is_pending):
            with st.spinner("Đang đọc hóa đơn..."):
                try:
                    new_draft, success, message = run_async(
                        ledger_flow.scan_receipt(
                            image_bytes=uploaded_file.getvalue(),
                            filename=uploaded_file.name,
                            draft=draft,
                            correlation_id=create_correlation_id(),
                        )
                    )
                except ImageValidationError as e:
                    st.error(f"Ảnh không hợp lệ: {e.reason}")
                except RequestInProgressError:
                    st.warning("Đang xử lý một hóa đơn khác, vui lòng đợi.")
                else:
                    if success:
                        _reset_draft(new_draft)
                        st.session_state.ledger_notice = message
                        st.rerun()
                    st.error(message)

    if st.session_state.get("ledger_notice"):
        st.info(st.session_state.pop("ledger_notice"))

    # Add form
    st.subheader("Thêm giao dịch")
    types = list(TransactionType)
    tx_type = st.radio(
        "Loại",
        options=types,
        index=types.index(draft.type),
        format_func=lambda t: "Thu" if t == TransactionType.INCOME else "Chi",
        horizontal=True,
        key=f"type_{version}",
    )
    with st.form(f"entry_form_{version}"):
        entry_date = st.date_input("Ngày", value=draft.date)
        amount = st.number_input(
            "Số tiền (VNĐ)",
            min_value=0,
            value=int(draft.amount or 0),
            step=100_000,
        )
        description = st.text_input(
            "Nội dung",
            value=draft.description or "",
            placeholder="VD: Bán hàng sáng nay" if tx_type == TransactionType.INCOME else "VD: Thanh toán tiền điện",
        )
        if tx_type == TransactionType.INCOME:
            group_ids = [group.id for group in TAX_GROUPS]
            tax_group_id = st.selectbox(
                "Nhóm Ngành Thuế",
                options=group_ids,
                index=group_ids.index(draft.tax_group_id),
                format_func=group_label,
            )
            expense_category = draft.expense_category
        else:
            categories = list(EXPENSE_CATEGORY_LABELS)
            current = draft.expense_category or ExpenseCategory.SUPPLIES
            expense_category = st.selectbox(
                "Danh Mục Chi Phí",
                options=categories,
                index=categories.index(current),
                format_func=expense_category_label,
            )
            tax_group_id = draft.tax_group_id
        has_invoice = st.checkbox("Có hóa đơn/chứng từ", value=draft.has_invoice)
        submitted = st.form_submit_button("💾 Lưu giao dịch", type="primary")

    if submitted:
        candidate = TransactionDraft(
            type=tx_type,
            date=entry_date,
            description=description,
            amount=Decimal(amount) if amount else None,
            tax_group_id=tax_group_id,
            expense_category=expense_category,
            has_invoice=has_invoice,
        )
        try:
            transaction, result = ledger_flow.add_from_draft(candidate)
        except IncompleteDraftError as e:
            st.error(ledger_flow.validation_summary(e.result))
        else:
            notice = f"Đã lưu: {transaction.description} ({format_currency(transaction.amount)})"
            if result.warnings:
                notice += "\n\n" + "\n".join(f"⚠️ {w}" for w in result.warnings)
            st.session_state.ledger_notice = notice
            _reset_draft(TransactionDraft(type=tx_type))
            st.rerun()

    # Entry list
    st.markdown("---")
    query = st.text_input("🔎 Tìm kiếm giao dịch...", key="ledger_search")
    entries = ledger_flow.store.search(query)
    if not entries:
        st.info("Không có giao dịch nào.")
    for entry in entries:
        col1, col2, col3 = st.columns([5, 3, 1])
        label = (
            group_label(entry.tax_group_id)
            if entry.is_income
            else expense_category_label(entry.expense_category)
        )
        invoice_mark = "" if entry.has_invoice else " · ⚠️ Không hóa đơn"
        col1.markdown(
            f"**{entry.description}**  \n"
            f"{entry.date.strftime('%d/%m/%Y')} · {label}{invoice_mark}"
        )
        sign = "+" if entry.is_income else "-"
        col2.markdown(f"**{sign}{format_currency(entry.amount)}**")
        if col3.button("🗑️", key=f"delete_{entry.id}"):
            ledger_flow.remove(entry.id)
            st.rerun()


def render_assistant_page(assistant_flow: AssistantFlow):
    """Chat with the tax assistant."""
    st.title("💬 Trợ lý AI")

    for message in assistant_flow.transcript.messages:
        role = "user" if message.role == ChatRole.USER else "assistant"
        with st.chat_message(role):
            st.markdown(message.text)

    question = st.chat_input("Nhập câu hỏi...", disabled=assistant_flow.is_pending)
    if not question or not question.strip():
        return

    with st.chat_message("user"):
        st.markdown(question)
    with st.spinner("Đang trả lời..."):
        try:
            run_async(assistant_flow.ask(question, correlation_id=create_correlation_id()))
        except RequestInProgressError:
            st.warning("Vui lòng đợi câu trả lời trước.")
            return
    st.rerun()


def render_activity_page(audit_logger):
    """Session activity trail and configuration status."""
    st.title("⚙️ Hoạt động & Cài đặt")

    st.markdown("### Trạng thái kết nối")
    status = validate_all_settings()
    services = [
        ("Gemini (Trợ lý AI)", "gemini"),
        ("Hồ sơ người nộp thuế", "taxpayer"),
        ("Cấu hình ứng dụng", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            error = status.get(f"{key}_error", "Chưa cấu hình")
            st.warning(f"⚠️ {name} - {error}")

    st.markdown("---")
    st.markdown("### Hoạt động gần đây")
    events = audit_logger.recent_events(limit=50)
    if not events:
        st.info("Chưa có hoạt động.")
    for event in events:
        st.markdown(
            f"`{event.timestamp.strftime('%H:%M:%S')}` **{event.event_type.value}** - "
            f"{event.description}"
        )

    st.markdown("---")
    st.markdown(
        "Để bật trợ lý AI, tạo tệp `.env` với `GEMINI_API_KEY`. "
        "Xem `.env.example` để biết các biến cấu hình."
    )


if __name__ == "__main__":
    main()
