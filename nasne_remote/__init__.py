"""nasne_remote: cliente de mando a distancia para grabadores nasne."""
