from fastapi.testclient import TestClient


class TestShortenEndpoint:
    """Test POST /api/shorten"""

    def test_create_short_url(self, uncached_client: TestClient):
        """Test creating a short URL"""
        url_data = {"originalUrl": "https://www.google.com/"}

        response = uncached_client.post("/api/shorten", json=url_data)
        assert response.status_code == 201

        data = response.json()
        assert data["message"] == "New short URL created"
        assert data["originalUrl"] == url_data["originalUrl"]
        assert data["shortUrl"] == f"http://sho.rt/{data['shortCode']}"
        assert 6 <= len(data["shortCode"]) <= 12

    def test_shorten_same_url_twice(self, uncached_client: TestClient):
        """Test that the second request returns the existing mapping"""
        url_data = {"originalUrl": "https://a.example/x"}

        first = uncached_client.post("/api/shorten", json=url_data)
        second = uncached_client.post("/api/shorten", json=url_data)

        assert first.status_code == 201
        assert second.status_code == 200
        assert "exists" in second.json()["message"]
        assert second.json()["shortCode"] == first.json()["shortCode"]

    def test_second_call_served_from_cache(self, client: TestClient):
        """Test that the cached mapping is reported as such"""
        url_data = {"originalUrl": "https://a.example/x"}

        first = client.post("/api/shorten", json=url_data)
        second = client.post("/api/shorten", json=url_data)

        assert second.status_code == 200
        assert second.json()["message"] == "URL already exists (from cache)"
        assert second.json()["shortCode"] == first.json()["shortCode"]

    def test_missing_url(self, client: TestClient):
        """Test creating a short URL without a URL"""
        response = client.post("/api/shorten", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Original URL is required", "code": "invalid_input"}

    def test_invalid_url(self, client: TestClient):
        """Test creating URL with invalid URL"""
        response = client.post("/api/shorten", json={"originalUrl": "not-a-valid-url"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid URL format", "code": "invalid_input"}


class TestRedirectEndpoint:
    """Test GET /{short_code}"""

    def test_redirect_url(self, uncached_client: TestClient):
        """Test URL redirection"""
        create_response = uncached_client.post("/api/shorten", json={"originalUrl": "https://www.github.com/"})
        short_code = create_response.json()["shortCode"]

        response = uncached_client.get(f"/{short_code}", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com/"

    def test_redirect_from_cache(self, client: TestClient):
        """Test redirection when the mapping is cached"""
        create_response = client.post("/api/shorten", json={"originalUrl": "https://www.github.com/"})
        short_code = create_response.json()["shortCode"]

        response = client.get(f"/{short_code}", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com/"

    def test_redirect_nonexistent_url(self, client: TestClient):
        """Test redirecting non-existent URL"""
        response = client.get("/doesnotexist", follow_redirects=False)
        assert response.status_code == 404
        assert response.json() == {"error": "Short URL not found", "code": "not_found"}

    def test_redirect_malformed_code(self, client: TestClient):
        """Test that codes outside the short code alphabet are not looked up"""
        response = client.get("/a.b", follow_redirects=False)
        assert response.status_code == 404


class TestAnalyticsEndpoint:
    """Test GET /api/analytics"""

    def test_no_records(self, client: TestClient):
        response = client.get("/api/analytics")
        assert response.status_code == 200
        assert response.json() == {"message": "No record found"}

    def test_shorten_redirect_analytics(self, uncached_client: TestClient):
        """Test the full flow: shorten, redirect, then read analytics"""
        create_response = uncached_client.post("/api/shorten", json={"originalUrl": "https://a.example/x"})
        short_code = create_response.json()["shortCode"]
        uncached_client.get(f"/{short_code}", follow_redirects=False)

        response = uncached_client.get("/api/analytics")
        assert response.status_code == 200

        data = response.json()
        assert data["message"] == "Analytics data fetched successfully"
        assert data["totalUrls"] >= 1
        assert data["totalClicks"] >= 1
        recent = {u["shortCode"]: u for u in data["recentUrls"]}
        assert recent[short_code]["originalUrl"] == "https://a.example/x"
        assert recent[short_code]["clicks"] == 1

    def test_analytics_refresh_after_creation(self, client: TestClient):
        """Test that creating a URL invalidates the cached summary"""
        assert client.get("/api/analytics").json() == {"message": "No record found"}

        client.post("/api/shorten", json={"originalUrl": "https://a.example/x"})

        assert client.get("/api/analytics").json()["totalUrls"] == 1


class TestStatsEndpoint:
    """Test GET /api/urls/{short_code}/stats"""

    def test_url_stats(self, uncached_client: TestClient):
        """Test getting URL statistics"""
        create_response = uncached_client.post("/api/shorten", json={"originalUrl": "https://www.stackoverflow.com/"})
        short_code = create_response.json()["shortCode"]

        uncached_client.get(f"/{short_code}", follow_redirects=False)
        uncached_client.get(f"/{short_code}", follow_redirects=False)

        response = uncached_client.get(f"/api/urls/{short_code}/stats")
        assert response.status_code == 200

        data = response.json()
        assert data["shortCode"] == short_code
        assert data["clicks"] == 2
        assert data["lastClickedAt"] is not None

    def test_stats_nonexistent_url(self, client: TestClient):
        response = client.get("/api/urls/nonexistent/stats")
        assert response.status_code == 404


class TestServiceEndpoints:

    def test_root(self, client: TestClient):
        data = client.get("/").json()
        assert data["docs"] == "/docs"
        assert "version" in data

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
