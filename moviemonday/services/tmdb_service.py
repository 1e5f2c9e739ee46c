import requests
from typing import Dict, List, Optional
from fastapi import Depends, HTTPException
from moviemonday.config import Settings, get_settings
from moviemonday.utils.cache import cache
import logging

logger = logging.getLogger(__name__)

CAST_LIMIT = 10
CREW_JOBS = {"Director": "Director", "Writer": "Writer", "Screenplay": "Writer"}


# TMDB Service to interact with The Movie Database API
class TMDBService:

    def __init__(self, settings: Settings):
        self.base_url = settings.TMDB_BASE_URL.rstrip("/")
        self.api_key = settings.TMDB_API_KEY
        self.timeout = settings.TMDB_TIMEOUT_SECONDS

    def __repr__(self):
        # Used as part of the cache key
        return f"TMDBService({self.base_url})"

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    # Internal method to make GET requests to TMDB API
    def _make_request(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """
        Make HTTP request to TMDB API.

        Args:
            endpoint: API endpoint (e.g., "/movie/550")
            params: Query parameters

        Returns:
            JSON response from TMDB

        Raises:
            HTTPException: If API key is missing or request fails
        """
        if not self.api_key:
            raise HTTPException(status_code=500, detail="TMDB API key not configured")
        params = dict(params or {})
        params['api_key'] = self.api_key
        url = f"{self.base_url}{endpoint}"

        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            logger.debug(f"TMDB API request successful: {endpoint}")
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"TMDB API error for {endpoint}: {str(e)}")
            raise HTTPException(status_code=502, detail="TMDB API error")

    @cache(ttl=600)  # Cache movie details for 10 minutes
    def get_movie_details(self, movie_id: int) -> Dict:
        """
        Get movie information including credits.
        Cached for 10 minutes.
        """
        return self._make_request(f"/movie/{movie_id}", {'append_to_response': 'credits'})

    def get_selection_metadata(self, movie_id: int) -> Optional[Dict]:
        """
        Genres, release year, top-billed cast and writing/directing crew for a
        movie selection. Returns None when TMDB is unavailable so callers can
        save the selection without it.
        """
        if not self.enabled:
            logger.debug("TMDB API key not configured, skipping metadata for %s", movie_id)
            return None
        try:
            details = self.get_movie_details(movie_id)
        except HTTPException as exc:
            logger.warning("Could not fetch TMDB metadata for %s: %s", movie_id, exc.detail)
            return None
        return self.extract_metadata(details)

    @staticmethod
    def extract_metadata(details: Dict) -> Dict:
        release_date = details.get("release_date") or ""
        release_year = int(release_date[:4]) if release_date[:4].isdigit() else None
        credits = details.get("credits") or {}

        cast: List[Dict] = []
        for member in (credits.get("cast") or [])[:CAST_LIMIT]:
            cast.append({
                "actor_id": member.get("id"),
                "name": member.get("name"),
                "character": member.get("character"),
                "profile_path": member.get("profile_path"),
                "order": member.get("order"),
            })

        crew: List[Dict] = []
        seen = set()
        for member in credits.get("crew") or []:
            job = CREW_JOBS.get(member.get("job"))
            if job is None or (member.get("id"), job) in seen:
                continue
            seen.add((member.get("id"), job))
            crew.append({
                "person_id": member.get("id"),
                "name": member.get("name"),
                "job": job,
                "department": member.get("department"),
                "profile_path": member.get("profile_path"),
            })

        return {
            "genres": [genre["name"] for genre in details.get("genres") or [] if genre.get("name")],
            "release_year": release_year,
            "cast": [member for member in cast if member["actor_id"] and member["name"]],
            "crew": [member for member in crew if member["person_id"] and member["name"]],
        }


def get_tmdb_service(settings: Settings = Depends(get_settings)) -> TMDBService:
    return TMDBService(settings)
