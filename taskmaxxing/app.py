from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timedelta
from functools import wraps

import requests
from flask import (
    Flask,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    send_from_directory,
    url_for,
)
from werkzeug.exceptions import HTTPException

from . import achievements, auth, config, db, finance, planner, stats

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_mapping(config.as_mapping())
app.secret_key = config.SECRET_KEY

PUBLIC_API_PATHS = {"/api/auth/login", "/api/auth/register", "/api/auth/logout"}
PUBLIC_API_PREFIXES = ("/api/auth/password-reset",)


class ApiError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if g.user is None:
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapped


def is_public_api(path: str) -> bool:
    return path in PUBLIC_API_PATHS or path.startswith(PUBLIC_API_PREFIXES)


@app.before_request
def load_user():
    g.user = auth.get_user_from_request(request)
    if request.endpoint == "styles_css":
        return None
    db.ensure_db()

    if request.path.startswith("/api/") and not is_public_api(request.path):
        if g.user is None:
            return jsonify({"error": "Unauthorized"}), 401
    return None


@app.context_processor
def inject_user():
    return {"current_user": g.get("user"), "now": datetime.now()}


@app.errorhandler(ApiError)
def handle_api_error(exc: ApiError):
    return jsonify({"error": exc.message}), exc.status_code


@app.errorhandler(planner.PlannerError)
def handle_planner_error(exc: planner.PlannerError):
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(Exception)
def handle_unexpected_error(exc: Exception):
    if isinstance(exc, HTTPException):
        return exc
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    if request.path.startswith("/api/"):
        return jsonify({"error": "Internal server error"}), 500
    return render_template("error.html"), 500


@app.route("/styles.css")
def styles_css():
    public_dir = config.BASE_DIR / "public"
    return send_from_directory(public_dir, "styles.css")


def current_user_id() -> int:
    return int(g.user["userId"])


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_int(value, default: int | None) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def finance_constants() -> dict:
    return {
        "biweekly_paycheck": app.config["BIWEEKLY_PAYCHECK"],
        "rent": app.config["MONTHLY_RENT"],
        "savings": app.config["MONTHLY_SAVINGS"],
        "credit_card_limit": app.config["CREDIT_CARD_LIMIT"],
    }


# -------------------- auth helpers --------------------


def register_user(email, password, name) -> dict:
    if not email or not password or not name:
        raise ApiError("Email, password, and name are required")

    sanitized_email = auth.sanitize_input(str(email).lower())
    sanitized_name = auth.sanitize_input(str(name))

    if not auth.validate_email(sanitized_email):
        raise ApiError("Invalid email format")

    valid, message = auth.validate_name(sanitized_name)
    if not valid:
        raise ApiError(message)

    valid, message = auth.validate_password(str(password))
    if not valid:
        raise ApiError(message)

    if db.get_user_by_email(sanitized_email) is not None:
        raise ApiError("User with this email already exists")

    user = db.create_user(sanitized_email, auth.hash_password(str(password)), sanitized_name)
    logger.info("Registered user %s", user["id"])
    return user


def authenticate(email, password) -> dict:
    if not email or not password:
        raise ApiError("Email and password are required")

    user = db.get_user_by_email(auth.sanitize_input(str(email).lower()))
    if user is None:
        time.sleep(0.1)
        raise ApiError("Invalid credentials", 401)
    if not auth.verify_password(str(password), user["password_hash"]):
        raise ApiError("Invalid credentials", 401)
    return {"id": user["id"], "email": user["email"], "name": user["name"]}


def set_auth_cookie(response, user: dict, remember_me: str | None):
    token = auth.create_token(
        {"userId": user["id"], "email": user["email"], "name": user["name"]}
    )
    response.set_cookie(
        auth.COOKIE_NAME,
        token,
        max_age=auth.cookie_max_age(remember_me),
        httponly=True,
        secure=app.config["APP_ENV"] == "production",
        samesite="Strict",
        path="/",
    )
    return response


def clear_auth_cookie(response):
    response.delete_cookie(auth.COOKIE_NAME, path="/")
    return response


def send_reset_email(to_email: str, token: str, base_url: str) -> bool:
    api_key = app.config["RESEND_API_KEY"]
    sender = app.config["RESET_EMAIL_FROM"]
    if not api_key or not sender:
        return False

    reset_link = f"{base_url.rstrip('/')}/password-reset/{token}"
    payload = {
        "from": sender,
        "to": [to_email],
        "subject": "Reset your Taskmaxxing password",
        "html": (
            "<p>Click the link below to reset your password. "
            "This link expires in 2 hours.</p>"
            f"<p><a href=\"{reset_link}\">{reset_link}</a></p>"
        ),
    }

    try:
        response = requests.post(
            "https://api.resend.com/emails",
            json=payload,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=10,
        )
    except requests.RequestException:
        logger.warning("Password reset email to %s failed", to_email, exc_info=True)
        return False
    return response.status_code in (200, 201)


def request_password_reset(email) -> str:
    email = auth.sanitize_input(str(email or "").lower())
    if not email:
        raise ApiError("Enter your email address.")

    user = db.get_user_by_email(email)
    if user is None:
        return "If that email exists, a reset link has been sent."

    token = secrets.token_urlsafe(24)
    expires_at = (datetime.now() + timedelta(hours=2)).isoformat(timespec="seconds")
    base_url = app.config["APP_BASE_URL"] or request.host_url.rstrip("/")
    if not send_reset_email(user["email"], token, base_url):
        raise ApiError("Email service is not configured.", 503)
    db.create_password_reset(user["id"], token, expires_at)
    return "If that email exists, a reset link has been sent."


def complete_password_reset(token: str, password) -> None:
    reset = db.get_valid_password_reset(token)
    if reset is None:
        raise ApiError("That reset link is invalid or expired.")
    valid, message = auth.validate_password(str(password or ""))
    if not valid:
        raise ApiError(message)
    db.set_password(reset["user_id"], auth.hash_password(str(password)))
    db.mark_password_reset_used(reset["id"])


# -------------------- week helpers --------------------


def load_week(user_id: int, week_key: str) -> planner.WeekData:
    return planner.normalize_week(db.get_week_data(user_id, week_key))


def save_week(user_id: int, week_key: str, week: dict) -> tuple[dict, list[dict]]:
    """Store a week and return it with the achievements the save unlocked."""
    week = planner.normalize_week(week)
    habits = db.get_user_habits(user_id)
    all_weeks = db.get_all_weeks_data(user_id)
    previous = all_weeks.get(week_key)

    before = (
        achievements.check_week(week_key, previous, all_weeks, habits)
        if previous is not None
        else []
    )
    saved = db.save_week_data(
        user_id,
        week_key,
        week["dailyTasks"],
        week["weeklyGoals"],
        week["habitCompletions"],
        week["futureTasks"],
        week["weekLocked"],
    )
    all_weeks[week_key] = saved
    after = achievements.check_week(week_key, saved, all_weeks, habits)
    return saved, achievements.new_achievements(before, after)


def requested_week_key(value: str | None) -> str:
    if not value:
        return planner.current_week_key()
    try:
        return planner.canonical_week_key(value)
    except planner.PlannerError:
        return planner.current_week_key()


# -------------------- pages --------------------


@app.route("/", methods=["GET"])
def index():
    return render_template("index.html")


@app.route("/login", methods=["GET", "POST"])
def login():
    if g.user is not None:
        return redirect(url_for("dashboard"))

    error = ""
    if request.method == "POST":
        try:
            user = authenticate(request.form.get("email", ""), request.form.get("password", ""))
        except ApiError as exc:
            error = exc.message
        else:
            response = redirect(url_for("dashboard"))
            return set_auth_cookie(response, user, request.form.get("rememberMe"))

    return render_template("login.html", error=error)


@app.route("/register", methods=["GET", "POST"])
def register():
    if g.user is not None:
        return redirect(url_for("dashboard"))

    error = ""
    if request.method == "POST":
        try:
            user = register_user(
                request.form.get("email", ""),
                request.form.get("password", ""),
                request.form.get("name", ""),
            )
        except ApiError as exc:
            error = exc.message
        else:
            response = redirect(url_for("dashboard"))
            return set_auth_cookie(response, user, None)

    return render_template("register.html", error=error)


@app.route("/logout", methods=["POST"])
def logout():
    return clear_auth_cookie(redirect(url_for("login")))


@app.route("/password-reset", methods=["GET", "POST"])
def password_reset_request():
    message = ""
    error = ""
    if request.method == "POST":
        try:
            message = request_password_reset(request.form.get("email", ""))
        except ApiError as exc:
            error = exc.message
    return render_template("password_reset_request.html", message=message, error=error)


@app.route("/password-reset/<token>", methods=["GET", "POST"])
def password_reset(token: str):
    if db.get_valid_password_reset(token) is None:
        return render_template("password_reset_invalid.html")

    error = ""
    if request.method == "POST":
        password = request.form.get("password", "")
        if password != request.form.get("confirm", ""):
            error = "Passwords do not match."
        else:
            try:
                complete_password_reset(token, password)
            except ApiError as exc:
                error = exc.message
            else:
                return redirect(url_for("login"))

    return render_template("password_reset_form.html", token=token, error=error)


@app.route("/dashboard", methods=["GET"])
@login_required
def dashboard():
    user_id = current_user_id()
    week_key = requested_week_key(request.args.get("week"))
    habits = db.get_user_habits(user_id)
    all_weeks = db.get_all_weeks_data(user_id)
    week = planner.normalize_week(all_weeks.get(week_key))

    earned = []
    if week_key in all_weeks:
        keys = achievements.check_week(week_key, week, all_weeks, habits)
        earned = [achievements.get_achievement(key) for key in keys]

    return render_template(
        "dashboard.html",
        week_key=week_key,
        week_label=planner.week_display(week_key),
        prev_week=planner.shift_week(week_key, -1),
        next_week=planner.shift_week(week_key, 1),
        days=planner.DAYS,
        week=week,
        habits=habits,
        habit_counts={h["id"]: planner.habit_week_count(week, h["id"]) for h in habits},
        habit_done=planner.habit_done,
        earned=earned,
        rarity_class=achievements.rarity_class,
    )


def apply_week_change(change, *args):
    user_id = current_user_id()
    week_key = requested_week_key(request.form.get("week"))
    week = load_week(user_id, week_key)
    try:
        updated = change(week, *args)
    except planner.PlannerError as exc:
        logger.info("Ignored change to week %s: %s", week_key, exc)
        return redirect(url_for("dashboard", week=week_key))

    _, unlocked = save_week(user_id, week_key, updated)
    for badge in unlocked:
        flash(f"{badge['emoji']} {badge['name']} unlocked: {badge['description']}")
    return redirect(url_for("dashboard", week=week_key))


@app.route("/dashboard/tasks/add", methods=["POST"])
@login_required
def add_task():
    return apply_week_change(
        planner.add_task,
        request.form.get("day", "Monday"),
        request.form.get("text", ""),
    )


@app.route("/dashboard/tasks/<int:task_id>/toggle", methods=["POST"])
@login_required
def toggle_task(task_id: int):
    return apply_week_change(planner.toggle_task, request.form.get("day", ""), task_id)


@app.route("/dashboard/tasks/<int:task_id>/move", methods=["POST"])
@login_required
def move_task(task_id: int):
    return apply_week_change(
        planner.move_task,
        request.form.get("day", ""),
        task_id,
        request.form.get("to_day", ""),
    )


@app.route("/dashboard/tasks/<int:task_id>/delete", methods=["POST"])
@login_required
def delete_task(task_id: int):
    return apply_week_change(planner.delete_task, request.form.get("day", ""), task_id)


@app.route("/dashboard/future/add", methods=["POST"])
@login_required
def add_future_task():
    return apply_week_change(planner.add_future_task, request.form.get("text", ""))


@app.route("/dashboard/future/<int:task_id>/schedule", methods=["POST"])
@login_required
def schedule_future_task(task_id: int):
    return apply_week_change(
        planner.schedule_future_task, task_id, request.form.get("day", "")
    )


@app.route("/dashboard/future/<int:task_id>/delete", methods=["POST"])
@login_required
def delete_future_task(task_id: int):
    return apply_week_change(planner.delete_future_task, task_id)


@app.route("/dashboard/goals/add", methods=["POST"])
@login_required
def add_goal():
    return apply_week_change(planner.add_goal, request.form.get("text", ""))


@app.route("/dashboard/goals/<int:goal_id>/toggle", methods=["POST"])
@login_required
def toggle_goal(goal_id: int):
    return apply_week_change(planner.toggle_goal, goal_id)


@app.route("/dashboard/goals/<int:goal_id>/delete", methods=["POST"])
@login_required
def delete_goal(goal_id: int):
    return apply_week_change(planner.delete_goal, goal_id)


@app.route("/dashboard/habits/<int:habit_id>/toggle", methods=["POST"])
@login_required
def toggle_habit(habit_id: int):
    return apply_week_change(planner.toggle_habit, habit_id, request.form.get("day", ""))


@app.route("/dashboard/lock", methods=["POST"])
@login_required
def lock_week():
    return apply_week_change(planner.set_week_locked, request.form.get("locked") == "1")


@app.route("/dashboard/habits/add", methods=["POST"])
@login_required
def add_habit():
    name = request.form.get("name", "").strip()
    week_key = requested_week_key(request.form.get("week"))
    if name:
        db.create_habit(current_user_id(), name)
    return redirect(url_for("dashboard", week=week_key))


@app.route("/dashboard/habits/<int:habit_id>/delete", methods=["POST"])
@login_required
def delete_habit(habit_id: int):
    week_key = requested_week_key(request.form.get("week"))
    db.delete_habit(current_user_id(), habit_id)
    return redirect(url_for("dashboard", week=week_key))


@app.route("/stats", methods=["GET"])
@login_required
def stats_page():
    view_mode = request.args.get("view", "all")
    week_key = requested_week_key(request.args.get("week"))
    data = compute_stats(current_user_id(), view_mode, week_key)
    overall = data["overallStats"]
    return render_template(
        "stats.html",
        view_mode=view_mode,
        week_key=week_key,
        week_label=planner.week_display(week_key),
        prev_week=planner.shift_week(week_key, -1),
        next_week=planner.shift_week(week_key, 1),
        weekly_rows=list(reversed(data["weeklyStats"][-8:])),
        habit_stats=data["habitStats"],
        habits=data["habits"],
        overall=overall,
        task_rate=stats.percent(overall["completedTasks"], overall["totalTasks"]),
        goal_rate=stats.percent(overall["completedGoals"], overall["totalGoals"]),
        progress_color=stats.progress_color,
    )


def compute_stats(user_id: int, view_mode: str, week_key: str) -> dict:
    habits = db.get_user_habits(user_id)
    if view_mode == "week":
        data = stats.calculate_week_stats(week_key, db.get_week_data(user_id, week_key), habits)
    else:
        data = stats.calculate_all_time_stats(db.get_all_weeks_data(user_id), habits)
    data["habits"] = habits
    return data


@app.route("/notes", methods=["GET", "POST"])
@login_required
def notes_page():
    user_id = current_user_id()
    error = ""
    if request.method == "POST":
        title = request.form.get("title", "").strip()
        if not title:
            error = "Title is required"
        else:
            db.create_note(user_id, title, request.form.get("content", ""))
            return redirect(url_for("notes_page"))

    return render_template(
        "notes.html",
        notes=db.list_notes(user_id),
        editing=parse_int(request.args.get("edit"), None),
        error=error,
    )


@app.route("/notes/<int:note_id>/edit", methods=["POST"])
@login_required
def edit_note(note_id: int):
    title = request.form.get("title", "").strip()
    if title:
        db.update_note(current_user_id(), note_id, title, request.form.get("content", ""))
    return redirect(url_for("notes_page"))


@app.route("/notes/<int:note_id>/delete", methods=["POST"])
@login_required
def remove_note(note_id: int):
    db.delete_note(current_user_id(), note_id)
    return redirect(url_for("notes_page"))


@app.route("/finance", methods=["GET", "POST"])
@login_required
def finance_page():
    user_id = current_user_id()
    month = request.values.get("month", "")
    if not finance.validate_month(month):
        month = finance.current_month()

    error = ""
    if request.method == "POST":
        bill = finance.parse_bill(request.form.get("creditCardBill", "").strip())
        if bill is None:
            error = "Credit card bill must be a number"
        else:
            notes = request.form.get("notes", "").strip()
            db.upsert_finance(user_id, month, bill, notes or None)
            return redirect(url_for("finance_page", month=month))

    entries = db.list_finances(user_id)
    current = next((entry for entry in entries if entry["month"] == month), None)
    summary = finance.calculate_finance_stats(entries, month, None, **finance_constants())
    return render_template(
        "finance.html",
        month=month,
        month_label=finance.month_display(month),
        prev_month=finance.shift_month(month, -1),
        next_month=finance.shift_month(month, 1),
        entries=entries,
        current=current,
        summary=summary,
        credit_card_limit=app.config["CREDIT_CARD_LIMIT"],
        rent=app.config["MONTHLY_RENT"],
        savings=app.config["MONTHLY_SAVINGS"],
        month_display=finance.month_display,
        error=error,
    )


# -------------------- API: auth --------------------


@app.route("/api/auth/register", methods=["POST"])
def api_register():
    body = json_body()
    user = register_user(body.get("email"), body.get("password"), body.get("name"))
    return jsonify({"message": "User created successfully", "user": user}), 201


@app.route("/api/auth/login", methods=["POST"])
def api_login():
    body = json_body()
    user = authenticate(body.get("email"), body.get("password"))
    response = jsonify({"message": "Login successful", "user": user})
    return set_auth_cookie(response, user, body.get("rememberMe"))


@app.route("/api/auth/logout", methods=["POST"])
def api_logout():
    return clear_auth_cookie(jsonify({"message": "Logged out"}))


@app.route("/api/auth/password-reset", methods=["POST"])
def api_password_reset_request():
    message = request_password_reset(json_body().get("email"))
    return jsonify({"message": message})


@app.route("/api/auth/password-reset/<token>", methods=["POST"])
def api_password_reset(token: str):
    complete_password_reset(token, json_body().get("password"))
    return jsonify({"message": "Password updated"})


# -------------------- API: habits --------------------


@app.route("/api/habits", methods=["GET"])
def api_get_habits():
    return jsonify({"habits": db.get_user_habits(current_user_id())})


@app.route("/api/habits", methods=["POST"])
def api_create_habit():
    name = json_body().get("name")
    if not isinstance(name, str) or not name.strip():
        raise ApiError("Habit name is required")
    habit = db.create_habit(current_user_id(), name.strip())
    return jsonify({"habit": habit}), 201


@app.route("/api/habits", methods=["DELETE"])
def api_delete_habit():
    habit_id = request.args.get("id")
    if not habit_id:
        raise ApiError("Habit ID is required")
    parsed = parse_int(habit_id, None)
    if parsed is None:
        raise ApiError("Invalid habit ID")
    db.delete_habit(current_user_id(), parsed)
    return jsonify({"message": "Habit deleted successfully"})


# -------------------- API: weeks --------------------


@app.route("/api/weeks", methods=["GET"])
def api_get_weeks():
    user_id = current_user_id()
    if request.args.get("all") == "true":
        return jsonify({"allWeeksData": db.get_all_weeks_data(user_id)})

    week_key = request.args.get("week")
    if not week_key:
        raise ApiError("Week key is required")
    week_key = planner.canonical_week_key(week_key)
    return jsonify({"weekData": load_week(user_id, week_key)})


@app.route("/api/weeks", methods=["POST"])
def api_save_week():
    body = json_body()
    week_key = body.get("weekKey")
    if not week_key:
        raise ApiError("Week key is required")
    week_key = planner.canonical_week_key(str(week_key))
    saved, unlocked = save_week(current_user_id(), week_key, body)
    return jsonify(
        {
            "message": "Week data saved successfully",
            "weekKey": week_key,
            "weekData": saved,
            "newAchievements": unlocked,
        }
    )


@app.route("/api/achievements", methods=["GET"])
def api_achievements():
    user_id = current_user_id()
    all_weeks = db.get_all_weeks_data(user_id)
    if not all_weeks:
        return jsonify({"achievements": []})

    week_key = requested_week_key(request.args.get("week"))
    week = planner.normalize_week(all_weeks.get(week_key))
    keys = achievements.check_week(week_key, week, all_weeks, db.get_user_habits(user_id))
    return jsonify({"achievements": [achievements.get_achievement(key) for key in keys]})


@app.route("/api/stats", methods=["GET"])
def api_stats():
    view_mode = request.args.get("view", "all")
    week_key = requested_week_key(request.args.get("week"))
    data = compute_stats(current_user_id(), view_mode, week_key)
    data.pop("habits")
    # JSON object keys must be strings.
    for row in data["weeklyStats"]:
        row["habitCompletions"] = {str(k): v for k, v in row["habitCompletions"].items()}
    return jsonify(data)


# -------------------- API: notes --------------------


def parse_note_id(raw: str) -> int:
    note_id = parse_int(raw, None)
    if note_id is None:
        raise ApiError("Invalid note ID")
    return note_id


def note_fields() -> tuple[str, str]:
    body = json_body()
    title = body.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ApiError("Title is required")
    content = body.get("content") or ""
    return title.strip(), str(content)


@app.route("/api/notes", methods=["GET"])
def api_list_notes():
    return jsonify({"notes": db.list_notes(current_user_id())})


@app.route("/api/notes", methods=["POST"])
def api_create_note():
    title, content = note_fields()
    return jsonify({"note": db.create_note(current_user_id(), title, content)})


@app.route("/api/notes/<note_id>", methods=["PUT"])
def api_update_note(note_id: str):
    parsed = parse_note_id(note_id)
    title, content = note_fields()
    note = db.update_note(current_user_id(), parsed, title, content)
    if note is None:
        raise ApiError("Note not found", 404)
    return jsonify({"note": note})


@app.route("/api/notes/<note_id>", methods=["DELETE"])
def api_delete_note(note_id: str):
    parsed = parse_note_id(note_id)
    if not db.delete_note(current_user_id(), parsed):
        raise ApiError("Note not found", 404)
    return jsonify({"message": "Note deleted successfully"})


# -------------------- API: finance --------------------


@app.route("/api/finance", methods=["GET"])
def api_list_finance():
    return jsonify({"finances": db.list_finances(current_user_id())})


@app.route("/api/finance", methods=["POST"])
def api_save_finance():
    body = json_body()
    month = body.get("month")
    raw_bill = body.get("creditCardBill")
    if not month or raw_bill is None:
        raise ApiError("Month and credit card bill are required")
    if not finance.validate_month(str(month)):
        raise ApiError("Invalid month format. Use YYYY-MM")
    bill = finance.parse_bill(raw_bill)
    if bill is None:
        raise ApiError("Credit card bill must be a number")

    saved = db.upsert_finance(current_user_id(), month, bill, body.get("notes") or None)
    return jsonify({"finance": saved})


def main() -> None:
    with app.app_context():
        db.ensure_db()
    app.run(debug=app.config["APP_ENV"] != "production")


if __name__ == "__main__":
    main()
