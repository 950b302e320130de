from django.urls import path

from . import views

urlpatterns = [
    path('upload', views.upload_document, name='document_upload'),
    path('list', views.list_documents, name='document_list'),
    path('categories', views.list_categories, name='document_categories'),
    path('stats', views.document_stats, name='document_stats'),
    path('category/<str:category>', views.documents_by_category, name='document_by_category'),
    path('<str:document_id>', views.delete_document, name='document_delete'),
]
