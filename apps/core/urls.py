from django.urls import path
from .views import public_runner, thanks

urlpatterns = [
    path("s/thanks/", thanks, name="survey-thanks"),
    path("s/<str:token>", public_runner, name="public-runner"),
]
