"""
HTTP tests for the exam grading API.
"""

from examgrader.core.models import GradeStatus
from examgrader.db.models import Answer, Grade

from conftest import auth


def _submit_body(exam, mc="B", short="photosynthesis", attempt_id=None):
    q1, q2 = exam.questions
    body = {"answers": [
        {"questionId": q1.id, "answer": mc},
        {"questionId": q2.id, "answer": short},
    ]}
    if attempt_id:
        body["attemptId"] = attempt_id
    return body


def _submit(api, exam, student, **kwargs):
    return api.post(f"/api/exams/{exam.id}/submit", json=_submit_body(exam, **kwargs), headers=auth(student))


# ==================== Authentication ====================

def test_missing_token_is_rejected(api, exam):
    """Test a request without a bearer token is refused."""
    response = api.post(f"/api/exams/{exam.id}/submit", json=_submit_body(exam))
    assert response.status_code == 401


def test_invalid_token_is_rejected(api, exam):
    """Test a garbage bearer token is refused."""
    response = api.get("/api/results", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_only_students_may_submit(api, people, exam):
    """Test teachers cannot submit an exam."""
    response = _submit(api, exam, people["teacher"])
    assert response.status_code == 403


# ==================== Submission ====================

def test_submit_returns_preliminary_score(api, db, people, exam):
    """Test the submit endpoint returns the preliminary score."""
    response = _submit(api, exam, people["student"])

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Exam submitted successfully"
    assert data["preliminaryScore"] == {"score": 9.0, "maxScore": 10.0, "percentage": 90}

    db.expire_all()
    grade = db.query(Grade).filter(Grade.attempt_id == data["attemptId"]).one()
    assert grade.status == GradeStatus.COMPLETED
    assert db.query(Answer).filter(Answer.attempt_id == data["attemptId"]).count() == 2


def test_double_submit_is_rejected(api, db, people, exam):
    """Test a second submit of the same attempt is a conflict."""
    attempt_id = _submit(api, exam, people["student"]).json()["attemptId"]

    response = _submit(api, exam, people["student"], mc="A", attempt_id=attempt_id)

    assert response.status_code == 400
    assert response.json()["error"] == "AlreadySubmittedError"
    db.expire_all()
    assert db.query(Answer).filter(Answer.attempt_id == attempt_id).count() == 2


def test_submit_to_unassigned_exam_is_forbidden(api, people, exam):
    """Test submitting an exam not assigned to the caller."""
    response = _submit(api, exam, people["other_student"])
    assert response.status_code == 403
    assert response.json()["error"] == "NotAssignedError"


def test_submit_unknown_exam_is_not_found(api, people, exam):
    """Test submitting an exam that does not exist."""
    response = api.post("/api/exams/nope/submit", json={"answers": []}, headers=auth(people["student"]))
    assert response.status_code == 404


def test_duplicate_answers_are_a_bad_request(api, people, exam):
    """Test two answers for one question are rejected."""
    q1, _ = exam.questions
    body = {"answers": [{"questionId": q1.id, "answer": "A"}, {"questionId": q1.id, "answer": "B"}]}
    response = api.post(f"/api/exams/{exam.id}/submit", json=body, headers=auth(people["student"]))
    assert response.status_code == 400


def test_malformed_body_is_unprocessable(api, people, exam):
    """Test request body validation."""
    response = api.post(f"/api/exams/{exam.id}/submit", json={"answers": [{"answer": "B"}]},
                        headers=auth(people["student"]))
    assert response.status_code == 422


def test_start_then_submit_attempt(api, people, exam):
    """Test starting an attempt and submitting it by id."""
    started = api.post(f"/api/exams/{exam.id}/attempts", headers=auth(people["student"]))

    assert started.status_code == 201
    attempt = started.json()
    assert attempt["isCompleted"] is False
    assert [q["type"] for q in attempt["questions"]] == ["MULTIPLE_CHOICE", "SHORT_ANSWER"]
    assert "correctAnswer" not in attempt["questions"][0]

    response = _submit(api, exam, people["student"], attempt_id=attempt["id"])
    assert response.status_code == 200
    assert response.json()["attemptId"] == attempt["id"]


# ==================== Results ====================

def test_result_hidden_from_student_until_published(api, people, exam, notifier):
    """Test the student result view before and after publishing."""
    attempt_id = _submit(api, exam, people["student"]).json()["attemptId"]

    hidden = api.get(f"/api/results/{attempt_id}", headers=auth(people["student"])).json()
    assert hidden["status"] == "pending_review"
    assert "totalScore" not in hidden

    teacher_view = api.get(f"/api/results/{attempt_id}", headers=auth(people["teacher"])).json()
    assert teacher_view["totalScore"] == 9

    published = api.post(f"/api/results/{attempt_id}/publish", headers=auth(people["teacher"]))
    assert published.status_code == 200
    assert published.json()["message"] == "Grade published"
    assert published.json()["isPublished"] is True

    again = api.post(f"/api/results/{attempt_id}/publish", headers=auth(people["teacher"]))
    assert again.json()["message"] == "Grade already published"
    assert again.json()["publishedAt"] == published.json()["publishedAt"]
    assert len(notifier.sent) == 1

    shown = api.get(f"/api/results/{attempt_id}", headers=auth(people["student"])).json()
    assert shown["totalScore"] == 9
    assert shown["grade"] == "A"


def test_grade_endpoint_overrides_and_publishes(api, people, exam, notifier):
    """Test manual override and publish through the grade endpoint."""
    attempt_id = _submit(api, exam, people["student"]).json()["attemptId"]

    response = api.post(
        f"/api/results/{attempt_id}/grade",
        json={"totalScore": 7, "feedback": "Check the definition"},
        headers=auth(people["teacher"]),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Exam graded successfully"
    assert data["totalScore"] == 7
    assert data["percentage"] == 70
    assert data["grade"] == "C"
    assert data["status"] == "COMPLETED"
    assert data["isPublished"] is True
    assert data["overallFeedback"] == "Check the definition"
    assert len(notifier.sent) == 1


def test_grade_endpoint_validates_and_authorizes(api, people, exam):
    """Test grade endpoint input checks and permissions."""
    attempt_id = _submit(api, exam, people["student"]).json()["attemptId"]
    url = f"/api/results/{attempt_id}/grade"

    assert api.post(url, json={"totalScore": 12}, headers=auth(people["teacher"])).status_code == 400
    assert api.post(url, json={"totalScore": 5}, headers=auth(people["student"])).status_code == 403
    assert api.post(url, json={"totalScore": 5}, headers=auth(people["other_teacher"])).status_code == 403
    assert api.post("/api/results/missing/grade", json={"totalScore": 5},
                    headers=auth(people["admin"])).status_code == 404


def test_grade_endpoints_wait_for_submission(api, people, exam, notifier):
    """Test override and publish on a started attempt are bad requests."""
    started = api.post(f"/api/exams/{exam.id}/attempts", headers=auth(people["student"])).json()
    teacher = auth(people["teacher"])

    assert api.post(f"/api/results/{started['id']}/grade", json={"totalScore": 8},
                    headers=teacher).status_code == 400
    assert api.post(f"/api/results/{started['id']}/publish", headers=teacher).status_code == 400
    assert notifier.sent == []

    response = _submit(api, exam, people["student"], attempt_id=started["id"])
    assert response.status_code == 200
    assert response.json()["preliminaryScore"]["score"] == 9.0


def test_list_results_scoped_to_caller(api, people, exam):
    """Test result listing per role."""
    attempt_id = _submit(api, exam, people["student"]).json()["attemptId"]

    before = api.get("/api/results", headers=auth(people["student"])).json()
    assert before["results"] == []
    assert before["statistics"]["totalExams"] == 0

    api.post(f"/api/results/{attempt_id}/publish", headers=auth(people["teacher"]))

    after = api.get("/api/results", headers=auth(people["student"])).json()
    assert [r["attemptId"] for r in after["results"]] == [attempt_id]
    assert after["statistics"]["averageScore"] == 90.0


# ==================== Service ====================

def test_health(api):
    """Test health check endpoint."""
    response = api.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "connected"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_root(api):
    """Test root endpoint."""
    assert api.get("/").json()["name"] == "Exam Grader"
