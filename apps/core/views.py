from django.http import Http404
from django.shortcuts import render

from apps.core.exceptions import NotFoundError
from apps.survey_sessions.services import resume


def public_runner(request, token: str):
    try:
        session = resume(token)
    except NotFoundError:
        raise Http404("Invalid invitation")
    return render(request, "public_runner.html", {
        "token": token,
        "state": session.state.name,
        "survey_title": session.invitation.survey.title,
    })


def thanks(request):
    return render(request, "thanks.html")
