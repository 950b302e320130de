"""URL configuration for the Mindful AI backend."""
from django.http import JsonResponse
from django.urls import include, path


def health_check(request):
    """Health check endpoint for container orchestration."""
    return JsonResponse({'status': 'healthy'})


urlpatterns = [
    path('api/health/', health_check, name='health_check'),
    path('api/auth/', include('apps.authentication.urls')),
    path('api/chat/', include('apps.chatbot.urls')),
    path('api/document/', include('apps.documents.urls')),
    path('api/whatsapp/', include('apps.whatsapp.urls')),
]
