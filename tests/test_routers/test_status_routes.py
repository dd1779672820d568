async def test_unknown_job_is_404(client):
    resp = await client.get("/jobs/doesnotexist")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Job not found"


async def test_health_reports_configuration(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["practice"] == "Smile Dental"
    assert data["lexicon_version"]
    assert data["features"]["real_transfers"] is True
    assert data["features"]["conference_calls"] is False
    assert data["configured"]["telnyx"] is True
    assert data["configured"]["sendgrid"] is True
    assert data["configured"]["emergency_doctor"] is True
    assert data["configured"]["ai_assistant"] is False
    assert data["errors"] == []
