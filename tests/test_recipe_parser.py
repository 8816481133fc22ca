import pytest
import requests
from unittest.mock import patch, MagicMock

from recipebox.services.errors import RecipeParseError
from recipebox.services.recipe_parser import parse_recipe

PAGE = "https://food.example/shakshuka"

PARSER_BODY = {
    "title": "Shakshuka",
    "description": "Eggs in spicy tomato sauce",
    "image": "https://food.example/shakshuka.jpg",
    "author": "Yotam",
    "ingredients": ["4 eggs", "  ", "1 can tomatoes"],
    "instructions_list": ["Simmer the sauce", "Crack in the eggs"],
    "prep_time": 10,
    "cook_time": 25,
}


def _response(body=None, status=200):
    res = MagicMock()
    res.json.return_value = body
    if status >= 400:
        res.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return res


def test_parse_recipe_builds_initial_data():
    with patch("recipebox.services.recipe_parser.requests.get", return_value=_response(PARSER_BODY)) as mock_get:
        result = parse_recipe(PAGE)

    assert mock_get.call_args.kwargs["params"] == {"url": PAGE}
    assert result.site_info.url == PAGE
    assert result.site_info.author == "Yotam"

    data = result.initial_data
    assert data.name == "Shakshuka"
    assert data.image.url_source_image == "https://food.example/shakshuka.jpg"
    assert data.image.image_metadata is None
    assert [i.name for i in data.ingredients] == ["4 eggs", "1 can tomatoes"]
    assert [s.name for s in data.steps] == ["Simmer the sauce", "Crack in the eggs"]
    assert all(not i.is_header for i in data.ingredients + data.steps)
    assert len({i.id for i in data.ingredients + data.steps}) == 4
    assert data.is_public is False
    assert data.prep_time == 10


@pytest.mark.parametrize("response", [
    _response(status=500),
    _response(body={"description": "no title"}),
])
def test_parse_recipe_is_all_or_nothing(response):
    with patch("recipebox.services.recipe_parser.requests.get", return_value=response):
        with pytest.raises(RecipeParseError):
            parse_recipe(PAGE)


def test_parse_recipe_timeout():
    with patch("recipebox.services.recipe_parser.requests.get", side_effect=requests.Timeout("slow")):
        with pytest.raises(RecipeParseError):
            parse_recipe(PAGE)


def test_parse_endpoint(client, auth):
    with patch("recipebox.services.recipe_parser.requests.get", return_value=_response(PARSER_BODY)):
        response = client.get("/api/recipes/parse", params={"url": PAGE}, headers=auth)

    assert response.status_code == 200
    assert response.json()["initial_data"]["name"] == "Shakshuka"


def test_parse_endpoint_failure(client, auth):
    with patch("recipebox.services.recipe_parser.requests.get", side_effect=requests.ConnectionError("down")):
        response = client.get("/api/recipes/parse", params={"url": PAGE}, headers=auth)

    assert response.status_code == 502
    assert response.json()["detail"] == "Unable to parse recipe"


def test_parse_endpoint_requires_identity(client):
    response = client.get("/api/recipes/parse", params={"url": PAGE})
    assert response.status_code == 401


def test_parsed_recipe_with_long_step_can_be_saved(client, auth):
    long_step = "Stir the sauce slowly " * 30
    body = {**PARSER_BODY, "instructions_list": [long_step, "Serve"]}
    with patch("recipebox.services.recipe_parser.requests.get", return_value=_response(body)):
        parsed = client.get("/api/recipes/parse", params={"url": PAGE}, headers=auth).json()

    initial = parsed["initial_data"]
    payload = {
        **initial,
        "url_source_image": initial["image"]["url_source_image"],
        "site_info": parsed["site_info"],
    }
    response = client.post("/api/recipes/parsed", json=payload, headers=auth)
    assert response.status_code == 201, response.text

    detail = client.get(f"/api/recipes/{response.json()['recipe_id']}", headers=auth).json()
    assert detail["steps"][0]["name"] == long_step.strip()
    assert len(detail["steps"][0]["name"]) > 500
