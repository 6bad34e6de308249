from datetime import datetime, timedelta

from conftest import auth_headers


def iso(days):
    return (datetime.utcnow() + timedelta(days=days)).replace(microsecond=0).isoformat()


def schedule(client, user, days=3, **overrides):
    body = {"title": "System design mock", "scheduledAt": iso(days)}
    body.update(overrides)
    return client.post("/api/schedule", json=body, headers=auth_headers(user))


def invite(client, user, **overrides):
    body = {
        "candidateName": "Sam Seeker",
        "candidateEmail": "Sam@Example.com",
        "skills": ["Python", "SQL"],
        "scheduledAt": iso(2),
        "duration": 45,
        "notes": "Bring a laptop",
    }
    body.update(overrides)
    return client.post("/api/schedule/interview", json=body, headers=auth_headers(user))


def test_schedule_defaults(client, candidate):
    r = schedule(client, candidate)
    assert r.status_code == 201
    interview = r.json()["interview"]
    assert interview["duration"] == 60
    assert interview["status"] == "scheduled"
    assert interview["reminderSent"] is False


def test_schedule_requires_title_and_time(client, candidate):
    r = client.post("/api/schedule", json={"title": "No time"}, headers=auth_headers(candidate))
    assert r.status_code == 422


def test_list_upcoming_ascending(client, candidate):
    schedule(client, candidate, days=5, title="later")
    schedule(client, candidate, days=1, title="sooner")
    schedule(client, candidate, days=-1, title="past")
    cancelled = schedule(client, candidate, days=2, title="cancelled").json()["interview"]
    client.delete(f"/api/schedule/{cancelled['_id']}", headers=auth_headers(candidate))

    upcoming = client.get("/api/schedule?upcoming=true", headers=auth_headers(candidate)).json()["interviews"]
    assert [i["title"] for i in upcoming] == ["sooner", "later"]

    everything = client.get("/api/schedule", headers=auth_headers(candidate)).json()["interviews"]
    assert [i["title"] for i in everything] == ["later", "cancelled", "sooner", "past"]

    only_cancelled = client.get("/api/schedule?status=cancelled", headers=auth_headers(candidate)).json()
    assert [i["title"] for i in only_cancelled["interviews"]] == ["cancelled"]


def test_list_includes_interviewer_details(client, candidate, interviewer):
    schedule(client, candidate, interviewerId=interviewer["_id"])
    interview = client.get("/api/schedule", headers=auth_headers(candidate)).json()["interviews"][0]
    assert interview["interviewer"]["firstName"] == "Ivan"
    assert "password_hash" not in interview["interviewer"]


def test_update_and_ownership(client, candidate, interviewer, admin):
    interview = schedule(client, candidate, interviewerId=interviewer["_id"]).json()["interview"]
    url = f"/api/schedule/{interview['_id']}"

    r = client.put(url, json={"status": "confirmed", "notes": "See you"}, headers=auth_headers(interviewer))
    assert r.status_code == 200
    assert r.json()["interview"]["status"] == "confirmed"

    assert client.put(url, json={"notes": "x"}, headers=auth_headers(admin)).status_code == 404
    assert client.put(url, json={"status": "postponed"}, headers=auth_headers(candidate)).status_code == 422
    assert client.put(url, json={"rating": 6}, headers=auth_headers(candidate)).status_code == 422


def test_invite_candidate_sends_email(client, db, interviewer, smtp):
    r = invite(client, interviewer)
    assert r.status_code == 201
    data = r.json()
    assert data["emailSent"] is True
    assert data["interview"]["candidateEmail"] == "sam@example.com"

    stored = db.scheduled_interviews.find_one({"_id": data["interview"]["id"]})
    assert stored["title"] == "Interview - Python, SQL"
    assert stored["interviewerId"] == interviewer["_id"]
    assert stored["meetingLink"].startswith("http")
    assert "email=sam%40example.com" in stored["registrationLink"]

    assert smtp.outbox[0]["To"] == "sam@example.com"


def test_invite_validation(client, interviewer):
    assert invite(client, interviewer, skills=[]).status_code == 400
    assert invite(client, interviewer, skills=["  "]).status_code == 400
    assert invite(client, interviewer, duration=0).status_code == 400
    assert invite(client, interviewer, scheduledAt=iso(-1)).status_code == 400
    assert invite(client, interviewer, candidateEmail="not-an-email").status_code == 422


def test_invite_requires_interviewer(client, candidate):
    assert invite(client, candidate).status_code == 403


def test_invite_survives_email_failure(client, db, interviewer, smtp):
    smtp.fail = True
    r = invite(client, interviewer)
    assert r.status_code == 201
    assert r.json()["emailSent"] is False
    assert db.scheduled_interviews.count_documents({}) == 1


def test_invite_notes_are_not_rendered_as_html(client, interviewer, smtp):
    notes = '<a href="https://evil.example/login">Reset your password</a>'
    assert invite(client, interviewer, notes=notes).status_code == 201
    html = next(p for p in smtp.outbox[0].get_payload() if p.get_content_type() == "text/html")
    body = html.get_payload(decode=True).decode()
    assert notes not in body
    assert "&lt;a href=" in body
