from datetime import datetime, timezone
from typing import Any, Optional

from flask import (
    abort,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from pydantic import ValidationError

import cache_provider
from config import PAYMENTS_PAGE_SIZE, logger
from core.models import ClassFormData, PaymentFile, PaymentFileFormData
from exceptions import DocumentStoreError
from utils.filters import ALL_STATUSES, filter_classes, filter_participants, filter_payments
from utils.notifications import notify
from utils.pagination import Pagination
from utils.storage import is_allowed_proof, payment_proof_s3_key, proof_link, upload_payment_proof
from utils.web import (
    enforce_csrf_protection,
    get_csrf_token,
    get_view_session_id,
    load_list_state,
    route_handler_logging,
    save_list_state,
)

STORE_NOTIFIED_SESSION_KEY = "store_unavailable_notified"
CLASS_STATUSES = ["active", "inactive", "upcoming", "on going"]
PARTICIPANT_STATUSES = ["pending", "accepted", "rejected"]
PAYMENT_LIST_VIEWS = {"payments", "verified_payments"}
EMPTY_PAYMENT_FORM = {"participantId": "", "filePath": "", "verified": False, "verificationStatus": "pending"}


def _return_view() -> str:
    """List view to go back to after a payment form or delete."""
    view = request.values.get("return_to", "payments")
    return view if view in PAYMENT_LIST_VIEWS else "payments"


def _payment_rows(payments: list[PaymentFile]) -> tuple[list[dict[str, Any]], bool]:
    """Attach cached participant/class details to each payment for rendering."""
    repositories = cache_provider.get_repositories()
    if not repositories.available:
        return [{"payment": p, "detail": None, "link": proof_link(p.file_path)} for p in payments], False

    detail_cache = cache_provider.get_payment_detail_cache(get_view_session_id())
    details = detail_cache.ensure([p.id for p in payments])
    rows = [{"payment": p, "detail": details.get(p.id), "link": proof_link(p.file_path)} for p in payments]
    return rows, len(details) < len(payments)


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid {field}: {first.get('msg', 'invalid value')}" if field else "Invalid form values"


def register_routes(app):
    @app.before_request
    def _apply_csrf_protection() -> None:
        enforce_csrf_protection()

    @app.before_request
    def _notify_store_unavailable() -> None:
        repositories = cache_provider.get_repositories()
        if repositories.available or session.get(STORE_NOTIFIED_SESSION_KEY):
            return
        notify("error", "Document store is not initialised")
        session[STORE_NOTIFIED_SESSION_KEY] = True

    @app.context_processor
    def _inject_csrf_token() -> dict[str, Any]:
        return {"csrf_token": get_csrf_token}

    @app.template_filter("datetime_ms")
    def _format_millis(value: int) -> str:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%d %B %Y %H:%M")

    @app.route('/favicon.ico')
    def ignore_favicon():
        return ('', 204)  # Empty response, no content

    @app.route("/healthz")
    def healthz():
        repositories = cache_provider.get_repositories()
        return jsonify({"status": "ok", "store_available": repositories.available}), 200

    @app.route("/")
    @route_handler_logging
    def dashboard():
        stats = cache_provider.get_repositories().dashboard_stats()
        return render_template("dashboard.html", stats=stats)

    @app.route("/payment")
    @route_handler_logging
    def payments():
        repositories = cache_provider.get_repositories()
        state = load_list_state("payments")
        if "q" in request.args:
            state.set_search(request.args.get("q", ""))
        save_list_state("payments", state)

        filtered = filter_payments(repositories.payments.items, state.search_query)
        rows, pending = _payment_rows(filtered)
        return render_template(
            "payments.html",
            title="Payment Management",
            rows=rows,
            details_pending=pending,
            loading=repositories.payments.loading,
            search_query=state.search_query,
            pagination=None,
            list_endpoint="payments",
        )

    @app.route("/payment/verified")
    @route_handler_logging
    def verified_payments():
        repositories = cache_provider.get_repositories()
        state = load_list_state("verified_payments")
        if "q" in request.args:
            state.set_search(request.args.get("q", ""))

        filtered = filter_payments(repositories.payments.verified, state.search_query)
        pagination = Pagination(total_items=len(filtered), page_size=PAYMENTS_PAGE_SIZE, current_page=state.current_page)
        requested_page = request.args.get("page", type=int)
        if requested_page is not None:
            pagination.change_page(requested_page)
        state.current_page = pagination.current_page
        save_list_state("verified_payments", state)

        rows, pending = _payment_rows(pagination.page_items(filtered))
        return render_template(
            "payments.html",
            title="Verified Payments",
            rows=rows,
            details_pending=pending,
            loading=repositories.payments.loading and not filtered,
            search_query=state.search_query,
            pagination=pagination,
            list_endpoint="verified_payments",
        )

    def _payment_form(payment_id: Optional[str]):
        repositories = cache_provider.get_repositories()
        payment = repositories.payments.get_by_id(payment_id) if payment_id else None
        if payment_id and payment is None:
            abort(404)

        mode = "edit" if payment else "add"
        if request.method == "GET":
            form_values = payment.model_dump(by_alias=True) if payment else dict(EMPTY_PAYMENT_FORM)
            return render_template("payment_form.html", mode=mode, form=form_values, payment_id=payment_id)

        submitted = request.form.to_dict()
        submitted.pop("csrf_token", None)

        proof = request.files.get("proof")
        if proof and proof.filename:
            if not is_allowed_proof(proof.filename, proof.mimetype):
                notify("error", "Only PDF or image payment proofs are allowed", upload_name=proof.filename)
                return render_template("payment_form.html", mode=mode, form=submitted, payment_id=payment_id), 400
            try:
                key = payment_proof_s3_key(submitted.get("participantId", ""), proof.filename)
            except ValueError as exc:
                notify("error", str(exc))
                return render_template("payment_form.html", mode=mode, form=submitted, payment_id=payment_id), 400
            if not upload_payment_proof(proof, key):
                notify("error", "Failed to upload payment proof", key=key)
                return render_template("payment_form.html", mode=mode, form=submitted, payment_id=payment_id), 502
            submitted["filePath"] = key

        try:
            form = PaymentFileFormData.model_validate(submitted)
        except ValidationError as exc:
            notify("error", _validation_message(exc))
            return render_template("payment_form.html", mode=mode, form=submitted, payment_id=payment_id), 400

        try:
            if payment:
                repositories.payments.update(payment.id, form)
            else:
                repositories.payments.add(form)
        except DocumentStoreError:
            logger.warning("Payment form submission failed", payment_id=payment_id)
            return render_template("payment_form.html", mode=mode, form=submitted, payment_id=payment_id), 502

        return redirect(url_for(_return_view()))

    @app.route("/payment/add", methods=["GET", "POST"])
    @route_handler_logging
    def add_payment():
        return _payment_form(None)

    @app.route("/payment/<payment_id>/edit", methods=["GET", "POST"])
    @route_handler_logging
    def edit_payment(payment_id: str):
        return _payment_form(payment_id)

    @app.route("/payment/<payment_id>/delete", methods=["POST"])
    @route_handler_logging
    def delete_payment(payment_id: str):
        repositories = cache_provider.get_repositories()
        try:
            detail_cache = cache_provider.get_payment_detail_cache(get_view_session_id())
            repositories.payments.delete(payment_id, detail_cache=detail_cache)
        except DocumentStoreError:
            logger.warning("Payment delete failed", payment_id=payment_id)
        return redirect(url_for(_return_view()))

    @app.route("/class")
    @route_handler_logging
    def classes():
        repositories = cache_provider.get_repositories()
        search_query = request.args.get("q", "")
        status_filter = request.args.get("status", ALL_STATUSES)
        filtered = filter_classes(repositories.classes.items, search_query, status_filter)
        return render_template(
            "classes.html",
            classes=filtered,
            loading=repositories.classes.loading,
            search_query=search_query,
            status_filter=status_filter,
            statuses=CLASS_STATUSES,
        )

    def _class_form(class_id: Optional[str]):
        repositories = cache_provider.get_repositories()
        class_item = repositories.classes.get_by_id(class_id) if class_id else None
        if class_id and class_item is None:
            abort(404)

        mode = "edit" if class_item else "add"
        if request.method == "GET":
            form_values = class_item.model_dump(by_alias=True) if class_item else {}
            return render_template("class_form.html", mode=mode, form=form_values, class_id=class_id, statuses=CLASS_STATUSES)

        submitted = request.form.to_dict()
        submitted.pop("csrf_token", None)
        try:
            form = ClassFormData.model_validate(submitted)
        except ValidationError as exc:
            notify("error", _validation_message(exc))
            return render_template("class_form.html", mode=mode, form=submitted, class_id=class_id, statuses=CLASS_STATUSES), 400

        try:
            if class_item:
                repositories.classes.update(class_item.id, form)
            else:
                repositories.classes.add(form)
        except DocumentStoreError:
            logger.warning("Class form submission failed", class_id=class_id)
            return render_template("class_form.html", mode=mode, form=submitted, class_id=class_id, statuses=CLASS_STATUSES), 502

        return redirect(url_for("classes"))

    @app.route("/class/add", methods=["GET", "POST"])
    @route_handler_logging
    def add_class():
        return _class_form(None)

    @app.route("/class/<class_id>/edit", methods=["GET", "POST"])
    @route_handler_logging
    def edit_class(class_id: str):
        return _class_form(class_id)

    @app.route("/class/<class_id>/delete", methods=["POST"])
    @route_handler_logging
    def delete_class(class_id: str):
        repositories = cache_provider.get_repositories()
        try:
            repositories.classes.delete(class_id)
        except DocumentStoreError:
            logger.warning("Class delete failed", class_id=class_id)
        return redirect(url_for("classes"))

    @app.route("/events/participants/<event_id>")
    @route_handler_logging
    def event_participants(event_id: str):
        repositories = cache_provider.get_repositories()
        search_query = request.args.get("q", "")
        status_filter = request.args.get("status", ALL_STATUSES)
        participants = filter_participants(repositories.participants.by_event(event_id), search_query, status_filter)
        return render_template(
            "participants.html",
            event=repositories.events.get_by_id(event_id),
            participants=participants,
            loading=repositories.participants.loading,
            search_query=search_query,
            status_filter=status_filter,
            statuses=PARTICIPANT_STATUSES,
        )
