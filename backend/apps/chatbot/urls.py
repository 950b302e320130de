from django.urls import path

from . import views

urlpatterns = [
    path('message', views.send_message, name='chat_message'),
    path('session', views.create_session, name='chat_create_session'),
    path('session/last', views.last_session, name='chat_last_session'),
    path('session/<str:session_id>/history', views.chat_history, name='chat_history'),
    path('session/<str:session_id>/title', views.update_title, name='chat_update_title'),
    path('session/<str:session_id>', views.delete_session, name='chat_delete_session'),
    path('sessions', views.list_sessions, name='chat_sessions'),
    path('generate-title', views.generate_title, name='chat_generate_title'),
    path('topic', views.start_topic_chat, name='chat_start_topic'),
    path('topics', views.list_topics, name='chat_topics'),

    # Admin
    path('admin/topics', views.create_topic, name='chat_admin_create_topic'),
    path('admin/topics/<str:topic_id>', views.manage_topic, name='chat_admin_topic'),
    path('admin/analytics', views.chat_analytics, name='chat_admin_analytics'),
]
